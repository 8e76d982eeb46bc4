"""
Feed loader for the order and adjustment sheets exposed through webhooks.

THIS FILE CONTAINS SOURCE-SPECIFIC LOGIC:
- Column names used by the two sheets (matched case-insensitively)
- Which order statuses count as a completed sale
- How adjustment "Type" text maps to a sign
- The "All" product value on the adjustments sheet

To adapt for a different sheet layout:
1. Update the column aliases below
2. Adjust PAID_STATUSES to the new order workflow
3. The core resolver, parsers and quality checker can be reused as-is
"""

import logging
from dataclasses import dataclass

import pandas as pd

from ledger.catalog import PRODUCT_IDS
from ledger.models import AdjustmentType, BulkTarget, EntryType, LedgerEntry, ProductUpdate
from ledger.parsers import (
    DateParser,
    clean_text,
    normalize_columns,
    parse_order_number,
    parse_quantity,
)
from ledger.quality import DataQualityChecker, DataQualityReport
from ledger.reconciliation import ReconciliationEngine
from ledger.resolver import LineItemResolver
from ledger.seed import seed_order_numbers
from ledger.settings import Settings
from ledger.store import LocalCache
from ledger.sync import SyncService

from .webhook_client import WebhookClient

logger = logging.getLogger(__name__)


# canonical column -> accepted (normalized) header names, first match wins
SALES_COLUMNS = {
    "order_id": ("order_id", "order_number", "order_no", "order"),
    "date": ("date", "order_date", "created_at"),
    "status": ("status", "order_status"),
    "customer": ("customer", "customer_name"),
    "products": ("products", "product", "items"),
}

ADJUSTMENT_COLUMNS = {
    "product": ("product", "products", "item"),
    "quantity": ("quantity", "qty"),
    "type": ("type", "adjustment_type"),
    "date": ("date", "timestamp"),
    "reason": ("reason", "notes", "note"),
}


@dataclass
class FeedLoad:
    """Entries produced from one feed plus what was tolerated on the way."""

    name: str
    entries: list[LedgerEntry]
    ok: bool
    quality: DataQualityReport


def select_columns(rows: list[dict], aliases: dict[str, tuple[str, ...]]) -> pd.DataFrame:
    """Build a frame with canonical column names; absent columns are empty."""
    raw = normalize_columns(pd.DataFrame(rows, dtype=object))
    df = pd.DataFrame(index=raw.index)
    for canonical, names in aliases.items():
        for name in names:
            if name in raw.columns:
                df[canonical] = raw[name]
                break
        else:
            df[canonical] = pd.Series([None] * len(raw), index=raw.index, dtype=object)
    return df


class WebhookFeedLoader:
    """
    Loads and normalizes the sales and adjustments sheets.

    Source-specific quirks handled:
    - Header casing/spacing varies ("Order ID", "order id", "ORDER_ID")
    - Dates are typed by hand; unparseable ones sort to the epoch
    - Products are free text ("Gold Package (x2), Barley Best")
    - Orders recorded before the sheet existed live in the seed history
      and must not be counted again
    """

    # Statuses that mean the order was paid for and stock left
    PAID_STATUSES = frozenset({"processing", "completed"})

    def __init__(
        self,
        client: WebhookClient,
        sales_url: str,
        adjustments_url: str,
        known_order_numbers: frozenset[str] | None = None,
        resolver: LineItemResolver | None = None,
    ):
        self.client = client
        self.sales_url = sales_url
        self.adjustments_url = adjustments_url
        self.known_order_numbers = (
            seed_order_numbers() if known_order_numbers is None else frozenset(known_order_numbers)
        )
        self.resolver = resolver or LineItemResolver()
        self.date_parser = DateParser()

    def load_sales(self) -> FeedLoad:
        """
        Load completed orders as invoice entries.

        Dropped rows:
        - status not in PAID_STATUSES
        - order number already in the seed history
        - order number repeated earlier in the feed
        - no recognised product
        """
        fetched = self.client.fetch_rows(self.sales_url)
        df = select_columns(fetched.rows, SALES_COLUMNS)

        df["order_number"] = df["order_id"].apply(parse_order_number)
        df["is_paid"] = df["status"].apply(lambda v: clean_text(v).lower() in self.PAID_STATUSES)
        df["date_unparsed"] = df["date"].apply(lambda v: self.date_parser.parse(v) is None)
        df["in_seed"] = df["order_number"].apply(lambda n: n is not None and n in self.known_order_numbers)
        df["changes"] = df["products"].apply(self.resolver.resolve)
        df["has_changes"] = df["changes"].apply(lambda c: len(c) > 0)
        df["unmatched_product"] = df["is_paid"] & ~df["has_changes"]

        # Only the first emitted row for an order number counts
        candidates = df["is_paid"] & ~df["in_seed"] & df["has_changes"]
        keys = df["order_number"].where(candidates)
        df["repeat_order"] = candidates & keys.notna() & keys.duplicated(keep="first")
        df["emit"] = candidates & ~df["repeat_order"]

        entries = []
        for index, row in df[df["emit"]].iterrows():
            order_number = parse_order_number(row["order_id"])
            entries.append(
                LedgerEntry(
                    id=f"sale-{order_number or index}",
                    timestamp=self.date_parser.parse_or_epoch(row["date"]),
                    type=EntryType.INVOICE,
                    order_number=order_number,
                    product_updates=[
                        ProductUpdate(product_id=c.product_id, change=-c.units) for c in row["changes"]
                    ],
                    user_id="system",
                    user_name=clean_text(row["customer"]) or "System",
                    notes=f"{clean_text(row['status'])} - {clean_text(row['products'])}",
                )
            )

        quality = self._check_sales_quality(df)
        logger.info(
            "Sales feed: %d rows -> %d entries (%d unpaid, %d seed duplicates, %d repeats, %d unmatched)",
            len(df),
            len(entries),
            int((~df["is_paid"]).sum()),
            int(df["in_seed"].sum()),
            int(df["repeat_order"].sum()),
            int(df["unmatched_product"].sum()),
        )
        return FeedLoad(name="sales", entries=entries, ok=fetched.ok, quality=quality)

    def load_adjustments(self) -> FeedLoad:
        """
        Load manual adjustment rows.

        The sign comes from the type: deduction types remove stock, anything
        else (including unknown types) adds. "All" fans out to every SKU.
        """
        fetched = self.client.fetch_rows(self.adjustments_url)
        df = select_columns(fetched.rows, ADJUSTMENT_COLUMNS)

        # Enum members stay out of frame columns; string dtype inference would flatten them
        df["is_bulk"] = df["product"].apply(lambda v: self.resolver.resolve_target(v) == BulkTarget.ALL)
        df["items"] = df["product"].apply(self.resolver.resolve)
        df["qty"] = df["quantity"].apply(lambda v: abs(parse_quantity(v)))
        df["date_unparsed"] = df["date"].apply(lambda v: self.date_parser.parse(v) is None)
        df["unmatched_product"] = ~df["is_bulk"] & df["items"].apply(lambda items: len(items) == 0)
        df["zero_quantity"] = df["qty"].apply(lambda q: q == 0)
        df["emit"] = ~df["unmatched_product"] & ~df["zero_quantity"]

        entries = []
        for index, row in df[df["emit"]].iterrows():
            adjustment_type = AdjustmentType.parse(row["type"])
            sign = adjustment_type.sign if adjustment_type is not None else 1
            change = int(row["qty"]) * sign

            if row["is_bulk"]:
                updates = [ProductUpdate(product_id=pid, change=change) for pid in PRODUCT_IDS]
            else:
                updates = [
                    ProductUpdate(product_id=item.product_id, change=item.units * change)
                    for item in row["items"]
                ]

            entries.append(
                LedgerEntry(
                    id=f"adj-{index}",
                    timestamp=self.date_parser.parse_or_epoch(row["date"]),
                    type=adjustment_type.entry_type if adjustment_type is not None else EntryType.MANUAL,
                    product_updates=updates,
                    user_id="manual",
                    user_name="Admin",
                    notes=clean_text(row["reason"]) or "Manual Adjustment",
                )
            )

        quality = self._check_adjustments_quality(df)
        logger.info(
            "Adjustments feed: %d rows -> %d entries (%d unmatched, %d zero quantity)",
            len(df),
            len(entries),
            int(df["unmatched_product"].sum()),
            int(df["zero_quantity"].sum()),
        )
        return FeedLoad(name="adjustments", entries=entries, ok=fetched.ok, quality=quality)

    def _check_sales_quality(self, df: pd.DataFrame) -> DataQualityReport:
        """Run quality checks on the sales frame."""
        checker = DataQualityChecker("Sales Feed", required_columns=["order_id", "date", "status", "products"])
        checker.check_flag(
            "date_unparsed", "unparsed_date", "{count:,} dates couldn't be parsed (placed at the epoch)", sample_col="date"
        )
        checker.check_flag(
            "in_seed", "seed_duplicate", "{count:,} orders already in seed history", severity="info", sample_col="order_number"
        )
        checker.check_flag(
            "repeat_order", "duplicate", "{count:,} repeated order numbers dropped", sample_col="order_number"
        )
        checker.check_flag(
            "unmatched_product", "unmatched_product", "{count:,} paid orders with no recognised product", sample_col="products"
        )
        checker.check_invalid_values("status", valid_values=set(self.PAID_STATUSES), severity="info")
        return checker.run(df)

    def _check_adjustments_quality(self, df: pd.DataFrame) -> DataQualityReport:
        """Run quality checks on the adjustments frame."""
        checker = DataQualityChecker("Adjustments Feed", required_columns=["product", "quantity", "type", "date"])
        checker.check_flag(
            "date_unparsed", "unparsed_date", "{count:,} dates couldn't be parsed (placed at the epoch)", sample_col="date"
        )
        checker.check_flag(
            "unmatched_product", "unmatched_product", "{count:,} rows with no recognised product", sample_col="product"
        )
        checker.check_flag(
            "zero_quantity", "zero_quantity", "{count:,} rows with no usable quantity", sample_col="quantity"
        )
        checker.check_invalid_values("type", valid_values={t.value for t in AdjustmentType}, severity="info")
        return checker.run(df)


def build_sync_service(settings: Settings, cache: LocalCache) -> tuple[SyncService, WebhookClient]:
    """Wire the webhook client, feed loader and engine from settings."""
    client = WebhookClient(timeout=settings.FEED_TIMEOUT_SECONDS, write_url=settings.ADJUSTMENTS_WRITE_URL)
    loader = WebhookFeedLoader(
        client,
        sales_url=settings.SALES_FEED_URL,
        adjustments_url=settings.ADJUSTMENTS_READ_URL,
    )
    engine = ReconciliationEngine(clamp_deductions=settings.CLAMP_FEED_DEDUCTIONS)
    sync = SyncService(loader, cache, engine=engine, persist_partial=settings.PERSIST_PARTIAL_SYNC)
    return sync, client
