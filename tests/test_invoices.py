"""Tests for inbound invoice processing."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from ledger.invoices import InvoiceProcessor
from ledger.models import EntryType
from ledger.store import LocalCache

NOW = datetime(2025, 12, 10, 12, 0, tzinfo=timezone.utc)


def _invoice(order_number: str = "3001", *items: tuple[str, int]) -> dict:
    line_items = [{"product_name": name, "quantity": qty} for name, qty in (items or (("Gold Package", 1),))]
    return {"order_number": order_number, "customer": "Jane", "line_items": line_items}


def _processor(cache: LocalCache) -> InvoiceProcessor:
    return InvoiceProcessor(cache, clock=lambda: NOW)


def test_successful_invoice_deducts_every_sku_and_appends_entries(cache: LocalCache) -> None:
    result = _processor(cache).process(_invoice("3001", ("Gold Package", 2), ("Barley Best", 1)))

    assert result.success is True
    assert result.reason is None
    assert {pid: change.change for pid, change in result.stock_updates.items()} == {
        "colostrum-p": -10,
        "colostrum-g": -10,
        "barley-best": -11,
    }
    assert result.stock_updates["barley-best"].after == 989

    catalog = cache.read_catalog()
    assert catalog["barley-best"].stock == 989
    ledger = cache.read_ledger()
    assert {e.id for e in ledger} == {
        "invoice-3001-colostrum-p",
        "invoice-3001-colostrum-g",
        "invoice-3001-barley-best",
    }
    assert all(e.type is EntryType.INVOICE and e.order_number == "3001" for e in ledger)
    assert all(e.timestamp == NOW for e in ledger)


def test_duplicate_order_is_rejected_without_changes(cache: LocalCache) -> None:
    processor = _processor(cache)
    processor.process(_invoice("3001"))
    before = cache.read_catalog()

    result = processor.process(_invoice("3001"))

    assert result.success is False
    assert result.reason == "duplicate_order"
    assert cache.read_catalog() == before


def test_unknown_product_rejects_whole_invoice(cache: LocalCache) -> None:
    result = _processor(cache).process(_invoice("3002", ("Gold Package", 1), ("Mystery box", 1)))
    assert result.success is False
    assert result.reason == "product_not_found"
    assert "Mystery box" in result.message
    assert cache.read_ledger() == []


def test_insufficient_stock_applies_nothing(cache: LocalCache) -> None:
    """One short SKU rejects the order and leaves every SKU untouched."""
    catalog = cache.read_catalog()
    catalog["colostrum-g"].stock = 4
    cache.write(catalog, [])

    result = _processor(cache).process(_invoice("3003", ("Gold Package", 1)))

    assert result.success is False
    assert result.reason == "insufficient_stock"
    assert cache.read_catalog()["colostrum-p"].stock == 1000
    assert cache.read_ledger() == []


def test_order_date_is_used_when_given(cache: LocalCache) -> None:
    request = _invoice("3004")
    request["order_date"] = "2025-12-01T08:00:00"
    _processor(cache).process(request)
    assert cache.read_ledger()[0].timestamp == datetime(2025, 12, 1, 8, 0, tzinfo=timezone.utc)


def test_invoice_without_line_items_is_invalid(cache: LocalCache) -> None:
    with pytest.raises(ValidationError):
        _processor(cache).process({"order_number": "3005", "line_items": []})


def test_seed_order_number_is_a_duplicate_on_an_unsynced_cache(cache: LocalCache) -> None:
    """Seed orders are already counted even when the cache has never synced."""
    result = _processor(cache).process(_invoice("1437"))
    assert result.success is False
    assert result.reason == "duplicate_order"
    assert cache.read_ledger() == []
