"""Unit tests for cell-level parsing helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pandas as pd

from ledger.models import EPOCH
from ledger.parsers import (
    DateParser,
    ProductNameNormalizer,
    clean_text,
    normalize_columns,
    parse_order_number,
    parse_quantity,
)


def test_date_parser_reads_iso_with_trailing_z_as_utc() -> None:
    """An ISO instant ending in Z should come back timezone-aware in UTC."""
    parsed = DateParser().parse("2025-03-18T14:05:00Z")
    assert parsed == datetime(2025, 3, 18, 14, 5, tzinfo=timezone.utc)


def test_date_parser_falls_back_to_explicit_formats() -> None:
    """Sheet-typed formats should parse and naive values should be read as UTC."""
    parser = DateParser()
    assert parser.parse("03/18/2025") == datetime(2025, 3, 18, tzinfo=timezone.utc)
    assert parser.parse("18 Mar 2025") == datetime(2025, 3, 18, tzinfo=timezone.utc)


def test_date_parser_returns_none_for_garbage_and_blanks() -> None:
    """Unparseable, empty and missing values should not raise."""
    parser = DateParser()
    assert parser.parse("not a date") is None
    assert parser.parse("   ") is None
    assert parser.parse(None) is None
    assert parser.parse(float("nan")) is None


def test_parse_or_epoch_places_bad_dates_at_epoch() -> None:
    """Bad dates still produce a sortable timestamp."""
    assert DateParser().parse_or_epoch("yesterday-ish") == EPOCH


def test_normalize_columns_lowercases_and_snake_cases_headers() -> None:
    """'Order ID' and ' Products ' should become order_id and products."""
    df = normalize_columns(pd.DataFrame([{"Order ID": 1, " Products ": "Gold"}]))
    assert list(df.columns) == ["order_id", "products"]


def test_normalize_columns_keeps_first_of_colliding_headers() -> None:
    """Two headers that normalize to the same name keep the first column."""
    df = normalize_columns(pd.DataFrame([["a", "b"]], columns=["Status", "status"]))
    assert list(df.columns) == ["status"]
    assert df.iloc[0]["status"] == "a"


def test_parse_quantity_handles_numeric_text_and_junk() -> None:
    """Quantities arrive as ints, floats and strings; junk becomes zero."""
    assert parse_quantity("12") == 12
    assert parse_quantity(12.0) == 12
    assert parse_quantity("-5") == -5
    assert parse_quantity("a dozen") == 0
    assert parse_quantity(None) == 0


def test_parse_order_number_strips_float_suffix() -> None:
    """Spreadsheet numbers like 1437.0 should match the seed order '1437'."""
    assert parse_order_number(1437.0) == "1437"
    assert parse_order_number(" 2001 ") == "2001"
    assert parse_order_number(float("nan")) is None
    assert parse_order_number("") is None


def test_clean_text_maps_missing_to_empty_string() -> None:
    assert clean_text(None) == ""
    assert clean_text(float("nan")) == ""
    assert clean_text("  Jane  ") == "Jane"


def test_product_name_normalizer_treats_separators_as_spaces() -> None:
    """Hyphens, underscores and repeated spaces collapse to single spaces."""
    normalizer = ProductNameNormalizer()
    assert normalizer.normalize("Colostrum-P") == "colostrum p"
    assert normalizer.normalize("  BARLEY__best ") == "barley best"


def test_parse_quantity_treats_infinite_values_as_unusable() -> None:
    """Overflowing quantities become zero instead of raising."""
    assert parse_quantity("inf") == 0
    assert parse_quantity("1e999") == 0
    assert parse_quantity(float("inf")) == 0


def test_date_parser_out_of_range_instant_is_unparsed() -> None:
    """An aware date that cannot be shifted to UTC falls back like any bad date."""
    parser = DateParser()
    assert parser.parse("0001-01-01T00:00:00+05:00") is None
    assert parser.parse_or_epoch("0001-01-01T00:00:00+05:00") == EPOCH
