"""Tests for the local cache and its stores."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from ledger.catalog import default_catalog
from ledger.models import EntryType, LedgerEntry, ProductUpdate
from ledger.store import ACTIVITY_LOG_KEY, PRODUCTS_KEY, JsonFileStore, LocalCache, MemoryStore


def _entry(entry_id: str, change: int = -1) -> LedgerEntry:
    return LedgerEntry(
        id=entry_id,
        timestamp=datetime(2025, 12, 1, 9, 30, tzinfo=timezone.utc),
        type=EntryType.INVOICE,
        order_number="2001",
        product_updates=[ProductUpdate(product_id="barley-best", change=change, before=900, after=900 + change)],
        notes="Completed - Barley Best",
    )


def test_empty_cache_reads_defaults() -> None:
    cache = LocalCache(MemoryStore())
    assert cache.read_catalog() == default_catalog()
    assert cache.read_ledger() == []


def test_corrupt_payloads_degrade_to_defaults() -> None:
    """Unreadable JSON never raises; the default catalog and an empty ledger come back."""
    cache = LocalCache(MemoryStore({PRODUCTS_KEY: "{not json", ACTIVITY_LOG_KEY: '[{"id": 1}]'}))
    assert cache.read_catalog() == default_catalog()
    assert cache.read_ledger() == []


def test_write_then_read_preserves_catalog_and_ledger() -> None:
    cache = LocalCache(MemoryStore())
    catalog = default_catalog()
    catalog["barley-best"].stock = 899
    catalog["barley-best"].last_updated = datetime(2025, 12, 1, tzinfo=timezone.utc)

    cache.write(catalog, [_entry("sale-2001")])

    assert cache.read_catalog() == catalog
    assert cache.read_ledger() == [_entry("sale-2001")]


def test_append_puts_new_entries_first() -> None:
    cache = LocalCache(MemoryStore())
    cache.write(default_catalog(), [_entry("old")])
    cache.append([_entry("first"), _entry("second")], default_catalog())
    assert [e.id for e in cache.read_ledger()] == ["second", "first", "old"]


def test_clear_removes_both_keys() -> None:
    store = MemoryStore()
    cache = LocalCache(store)
    cache.write(default_catalog(), [_entry("a")])
    cache.clear()
    assert store.read(PRODUCTS_KEY) is None
    assert store.read(ACTIVITY_LOG_KEY) is None


def test_json_file_store_writes_one_file_per_key(tmp_path: Path) -> None:
    """The file store persists across instances and clears its directory."""
    root = tmp_path / "cache"
    LocalCache(JsonFileStore(root)).write(default_catalog(), [_entry("sale-2001")])

    assert (root / "products.json").exists()
    assert (root / "activity-log.json").exists()
    assert [e.id for e in LocalCache(JsonFileStore(root)).read_ledger()] == ["sale-2001"]

    JsonFileStore(root).clear()
    assert list(root.glob("*.json")) == []


def test_json_file_store_missing_directory_reads_none(tmp_path: Path) -> None:
    assert JsonFileStore(tmp_path / "nowhere").read(PRODUCTS_KEY) is None


class _RecordingStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.written: list[str] = []

    def write(self, key: str, value: str) -> None:
        self.written.append(key)
        super().write(key, value)


def test_write_stores_ledger_before_catalog() -> None:
    """The catalog is written last so a half-finished write never has a newer catalog."""
    store = _RecordingStore()
    LocalCache(store).write(default_catalog(), [_entry("a")])
    assert store.written == [ACTIVITY_LOG_KEY, PRODUCTS_KEY]
