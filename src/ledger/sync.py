"""
Sync orchestration: fetch both feeds, reconcile with seed history, persist.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from .catalog import Catalog
from .models import LedgerEntry
from .reconciliation import ClampEvent, ReconciliationEngine
from .seed import generate_seed_history
from .store import LocalCache

logger = logging.getLogger(__name__)


class FeedResult(Protocol):
    name: str
    entries: list[LedgerEntry]
    ok: bool


class FeedLoader(Protocol):
    def load_sales(self) -> FeedResult: ...

    def load_adjustments(self) -> FeedResult: ...


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    catalog: Catalog
    ledger: list[LedgerEntry]
    partial: bool
    persisted: bool
    feeds: dict[str, Any] = field(default_factory=dict)
    clamped: list[ClampEvent] = field(default_factory=list)


class SyncService:
    """
    Runs the full reconciliation end to end.

    Both feeds are fetched concurrently and both must finish (or time out in
    the client) before the merge starts. Overlapping calls are refused: a
    second run() while one is in flight returns None and leaves the cache as
    the first run writes it.
    """

    def __init__(
        self,
        loader: FeedLoader,
        cache: LocalCache,
        engine: ReconciliationEngine | None = None,
        persist_partial: bool = True,
        seed_factory: Callable[[], list[LedgerEntry]] = generate_seed_history,
    ):
        self.loader = loader
        self.cache = cache
        self.engine = engine or ReconciliationEngine()
        self.persist_partial = persist_partial
        self.seed_factory = seed_factory
        self._in_flight = threading.Lock()

    @property
    def in_flight(self) -> bool:
        return self._in_flight.locked()

    def run(self) -> SyncResult | None:
        if not self._in_flight.acquire(blocking=False):
            logger.info("Sync already in flight; ignoring overlapping request")
            return None
        try:
            return self._run()
        finally:
            self._in_flight.release()

    def _run(self) -> SyncResult:
        logger.info("Syncing data...")
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="feed") as pool:
            sales_future = pool.submit(self.loader.load_sales)
            adjustments_future = pool.submit(self.loader.load_adjustments)
            sales = sales_future.result()
            adjustments = adjustments_future.result()

        seed = self.seed_factory()
        result = self.engine.reconcile(seed, sales.entries, adjustments.entries)

        partial = not (sales.ok and adjustments.ok)
        persisted = False
        if partial and not self.persist_partial:
            logger.warning("Partial sync (sales ok=%s, adjustments ok=%s); cache left unchanged", sales.ok, adjustments.ok)
        else:
            if partial:
                logger.warning("Partial sync (sales ok=%s, adjustments ok=%s); persisting anyway", sales.ok, adjustments.ok)
            self.cache.write(result.catalog, result.ledger)
            persisted = True

        return SyncResult(
            catalog=result.catalog,
            ledger=result.ledger,
            partial=partial,
            persisted=persisted,
            feeds={sales.name: sales, adjustments.name: adjustments},
            clamped=result.clamped,
        )
