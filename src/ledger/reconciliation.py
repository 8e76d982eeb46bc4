"""
Reconciliation engine: the one place where stock is computed.

Merges seed history with the normalized sales and adjustment feeds, sorts the
combined timeline, and replays it forward from the catalog's starting stock.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .catalog import Catalog, copy_catalog, default_catalog
from .models import EPOCH, LedgerEntry

logger = logging.getLogger(__name__)


@dataclass
class ClampEvent:
    """A deduction that was capped at the running balance during replay."""

    entry_id: str
    product_id: str
    requested: int
    applied: int


@dataclass
class ReconciliationResult:
    """Final catalog snapshot plus the replayed ledger (newest first)."""

    catalog: Catalog
    ledger: list[LedgerEntry]
    clamped: list[ClampEvent] = field(default_factory=list)

    def stock_levels(self) -> dict[str, int]:
        return {pid: p.stock for pid, p in self.catalog.items()}


def sort_key(entry: LedgerEntry) -> datetime:
    """Chronological key; missing or naive timestamps never raise."""
    ts = entry.timestamp
    if not isinstance(ts, datetime):
        return EPOCH
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


class ReconciliationEngine:
    """
    Replays ledger entries into a catalog.

    Steps:
    1. Concatenate seed, sales and adjustment entries
    2. Stable sort ascending by timestamp (ties keep concatenation order)
    3. Walk oldest to newest, filling before/after from the running stock
    4. Return the catalog and the ledger reversed to newest first

    Inputs are never mutated; replay works on copies so repeated runs over the
    same lists give identical output.

    Usage:
        engine = ReconciliationEngine()
        result = engine.reconcile(seed, sales, adjustments)
        result.catalog["colostrum-p"].stock
    """

    def __init__(self, initial_catalog: Catalog | None = None, clamp_deductions: bool = True):
        """
        Args:
            initial_catalog: Starting stock per SKU (defaults to the static catalog)
            clamp_deductions: Cap deductions at the running balance so replayed
                stock never goes below zero
        """
        self.initial_catalog = initial_catalog or default_catalog()
        self.clamp_deductions = clamp_deductions

    def merge(self, *sources: list[LedgerEntry]) -> list[LedgerEntry]:
        """Concatenate sources and sort oldest first (stable)."""
        combined: list[LedgerEntry] = []
        for source in sources:
            combined.extend(source)
        return sorted(combined, key=sort_key)

    def replay(self, entries: list[LedgerEntry]) -> ReconciliationResult:
        """
        Replay entries that are already in chronological order.

        Returns the ledger newest first.
        """
        catalog = copy_catalog(self.initial_catalog)
        replayed: list[LedgerEntry] = []
        clamped: list[ClampEvent] = []

        for original in entries:
            entry = original.copy()
            for update in entry.product_updates:
                product = catalog.get(update.product_id)
                if product is None:
                    logger.warning(
                        "Entry %s references unknown product %r; skipped in replay",
                        entry.id,
                        update.product_id,
                    )
                    continue

                change = update.change
                if self.clamp_deductions and change < 0 and product.stock + change < 0:
                    applied = -max(product.stock, 0)
                    clamped.append(
                        ClampEvent(
                            entry_id=entry.id,
                            product_id=update.product_id,
                            requested=change,
                            applied=applied,
                        )
                    )
                    logger.warning(
                        "Entry %s: deduction of %d from %s capped at %d (balance %d)",
                        entry.id,
                        -change,
                        update.product_id,
                        -applied,
                        product.stock,
                    )
                    change = applied

                update.before = product.stock
                product.stock += change
                update.change = change
                update.after = product.stock
                product.last_updated = entry.timestamp

            replayed.append(entry)

        replayed.reverse()
        return ReconciliationResult(catalog=catalog, ledger=replayed, clamped=clamped)

    def reconcile(
        self,
        seed: list[LedgerEntry],
        sales: list[LedgerEntry],
        adjustments: list[LedgerEntry],
    ) -> ReconciliationResult:
        """Merge the three sources and replay them."""
        result = self.replay(self.merge(seed, sales, adjustments))
        logger.info(
            "Reconciled %d seed, %d sales, %d adjustment entries -> %s",
            len(seed),
            len(sales),
            len(adjustments),
            result.stock_levels(),
        )
        return result
