"""Tests for ledger model helpers and serialization."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from ledger.models import AdjustmentType, EntryType, LedgerEntry, ProductUpdate, User


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Damaged", AdjustmentType.DAMAGED),
        ("temporary_out", AdjustmentType.TEMPORARY_OUT),
        ("Sample Demo", AdjustmentType.SAMPLE_DEMO),
        (" ADD ", AdjustmentType.ADD),
        ("restock", None),
        (None, None),
    ],
)
def test_adjustment_type_parse(text: str | None, expected: AdjustmentType | None) -> None:
    assert AdjustmentType.parse(text) is expected


def test_adjustment_type_signs_and_ledger_types() -> None:
    assert AdjustmentType.ADD.sign == 1
    assert AdjustmentType.RETURN.sign == 1
    assert AdjustmentType.REMOVE.sign == -1
    assert AdjustmentType.EXPIRED.sign == -1
    assert AdjustmentType.REMOVE.entry_type is EntryType.MANUAL
    assert AdjustmentType.MISSING.entry_type is EntryType.MISSING


def test_ledger_entry_round_trips_with_camel_case_keys() -> None:
    entry = LedgerEntry(
        id="sale-2001",
        timestamp=datetime(2025, 12, 1, tzinfo=timezone.utc),
        type=EntryType.INVOICE,
        order_number="2001",
        product_updates=[ProductUpdate(product_id="barley-best", change=-2, before=10, after=8)],
    )
    data = entry.to_dict()
    assert data["orderNumber"] == "2001"
    assert data["productUpdates"][0] == {"productId": "barley-best", "before": 10, "after": 8, "change": -2}
    assert LedgerEntry.from_dict(data) == entry


def test_naive_timestamps_are_read_as_utc() -> None:
    entry = LedgerEntry.from_dict({"id": "x", "timestamp": "2025-12-01T10:00:00", "type": "manual"})
    assert entry.timestamp.tzinfo is not None
    assert entry.product_updates == []


def test_copy_does_not_share_updates() -> None:
    entry = LedgerEntry(
        id="x",
        timestamp=datetime(2025, 12, 1, tzinfo=timezone.utc),
        type=EntryType.MANUAL,
        product_updates=[ProductUpdate(product_id="barley-best", change=1)],
    )
    clone = entry.copy()
    clone.product_updates[0].before = 99
    assert entry.product_updates[0].before == 0


def test_only_admin_and_staff_can_edit() -> None:
    assert User("1", "A", "admin").can_edit
    assert User("2", "B", "staff").can_edit
    assert not User("3", "C", "viewer").can_edit
