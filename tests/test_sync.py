"""Tests for the end-to-end sync service with a fake feed loader."""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from feeds.webhook_client import FetchedRows
from feeds.webhook_feeds import FeedLoad, WebhookFeedLoader
from ledger.models import EntryType, LedgerEntry, ProductUpdate
from ledger.quality import DataQualityReport
from ledger.store import LocalCache
from ledger.sync import SyncService


def _feed(name: str, entries: list[LedgerEntry] | None = None, ok: bool = True) -> FeedLoad:
    return FeedLoad(name=name, entries=entries or [], ok=ok, quality=DataQualityReport(name, 0))


def _sale(order_number: str, change: int = -5) -> LedgerEntry:
    return LedgerEntry(
        id=f"sale-{order_number}",
        timestamp=datetime(2025, 12, 1, tzinfo=timezone.utc),
        type=EntryType.INVOICE,
        order_number=order_number,
        product_updates=[ProductUpdate(product_id="barley-best", change=change)],
    )


class _StaticLoader:
    def __init__(self, sales: FeedLoad, adjustments: FeedLoad):
        self.sales = sales
        self.adjustments = adjustments

    def load_sales(self) -> FeedLoad:
        return self.sales

    def load_adjustments(self) -> FeedLoad:
        return self.adjustments


def test_sync_persists_reconciled_catalog_and_ledger(cache: LocalCache) -> None:
    loader = _StaticLoader(_feed("sales", [_sale("2001")]), _feed("adjustments"))
    result = SyncService(loader, cache).run()

    assert result is not None
    assert result.partial is False
    assert result.persisted is True
    assert cache.read_catalog()["barley-best"].stock == 900 - 5
    assert cache.read_ledger()[0].id == "sale-2001"
    assert len(cache.read_ledger()) == 89


def test_sync_is_idempotent(cache: LocalCache) -> None:
    """Syncing twice over the same feeds gives the same cached state."""
    service = SyncService(_StaticLoader(_feed("sales", [_sale("2001")]), _feed("adjustments")), cache)
    service.run()
    first = ([e.to_dict() for e in cache.read_ledger()], cache.read_catalog())
    service.run()
    second = ([e.to_dict() for e in cache.read_ledger()], cache.read_catalog())
    assert first == second


def test_failed_feed_still_persists_seed_and_other_feed_by_default(cache: LocalCache) -> None:
    loader = _StaticLoader(_feed("sales", ok=False), _feed("adjustments"))
    result = SyncService(loader, cache).run()

    assert result.partial is True
    assert result.persisted is True
    assert cache.read_catalog()["barley-best"].stock == 900


def test_partial_sync_can_leave_cache_untouched(cache: LocalCache) -> None:
    """With partial persistence off, a failed feed keeps the previous cache."""
    SyncService(_StaticLoader(_feed("sales", [_sale("2001")]), _feed("adjustments")), cache).run()

    failing = _StaticLoader(_feed("sales", ok=False), _feed("adjustments"))
    result = SyncService(failing, cache, persist_partial=False).run()

    assert result.persisted is False
    assert cache.read_catalog()["barley-best"].stock == 895


def test_sync_reports_clamped_deductions(cache: LocalCache) -> None:
    loader = _StaticLoader(_feed("sales", [_sale("2001", change=-5000)]), _feed("adjustments"))
    result = SyncService(loader, cache).run()
    assert cache.read_catalog()["barley-best"].stock == 0
    assert [c.entry_id for c in result.clamped] == ["sale-2001"]


def test_overlapping_sync_is_refused(cache: LocalCache) -> None:
    """A second run() while one is in flight returns None immediately."""
    started = threading.Event()
    release = threading.Event()

    class _BlockingLoader(_StaticLoader):
        def load_sales(self) -> FeedLoad:
            started.set()
            release.wait(timeout=5)
            return self.sales

    service = SyncService(_BlockingLoader(_feed("sales"), _feed("adjustments")), cache)
    results = []
    worker = threading.Thread(target=lambda: results.append(service.run()))
    worker.start()
    try:
        assert started.wait(timeout=5)
        assert service.in_flight is True
        assert service.run() is None
    finally:
        release.set()
        worker.join(timeout=5)

    assert results[0] is not None
    assert service.in_flight is False


def test_malformed_adjustment_rows_do_not_halt_sync(cache: LocalCache) -> None:
    """Bad quantities and dates in a real loader still produce a persisted sync."""

    class _CannedClient:
        def fetch_rows(self, url: str) -> FetchedRows:
            if url == "adjustments":
                return FetchedRows(
                    url=url,
                    rows=[
                        {"Product": "Barley Best", "Quantity": "inf", "Type": "add", "Date": "2025-12-02"},
                        {"Product": "Barley Best", "Quantity": 5, "Type": "damaged", "Date": "0001-01-01T00:00:00+05:00"},
                    ],
                )
            return FetchedRows(url=url, rows=[])

    loader = WebhookFeedLoader(_CannedClient(), sales_url="sales", adjustments_url="adjustments")
    result = SyncService(loader, cache).run()

    assert result.persisted is True
    assert cache.read_catalog()["barley-best"].stock == 895
