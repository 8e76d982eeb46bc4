"""
Seed history: orders that predate the remote order sheet.

These entries act as the opening balance of the ledger. Their order numbers
also form the dedup barrier for the sales feed, so a sheet row repeating one
of them is never counted twice.
"""

from datetime import datetime, timezone

from .catalog import PRODUCT_IDS, get_package
from .models import EntryType, LedgerEntry, ProductUpdate


HISTORICAL_CUSTOMER = "Historical Customer"

# Package orders: (package type, order date, order numbers)
PACKAGE_ORDERS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("gold", "2024-10-24", ("1437", "150", "151", "152", "154", "155", "157", "158", "159", "160", "161", "1018", "1275")),
    ("silver", "2025-03-18", ("1363", "1368", "1502", "1504")),
    ("bronze", "2025-02-07", ("1227", "1310", "1351", "1352", "1373", "1471", "1472", "1473", "1474", "1475", "1476")),
)

# Individual orders: (order number, order date, customer, product id, change)
INDIVIDUAL_ORDERS: tuple[tuple[str, str, str, str, int], ...] = (
    ("1367", "2025-04-27", "Husaini Bin Abdullah", "barley-best", -8),
    ("1370", "2025-05-15", "Husaini Bin Abdullah", "barley-best", -4),
    ("1501", "2025-11-16", "Husaini Bin Abdullah", "colostrum-p", -2),
    ("1501", "2025-11-16", "Husaini Bin Abdullah", "barley-best", -4),
)


def _order_date(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def generate_seed_history() -> list[LedgerEntry]:
    """
    Return the fixed list of historical invoice entries.

    One entry per (order, SKU). Before/after are placeholders; the
    reconciliation engine fills them in. Same output on every call.
    """
    entries: list[LedgerEntry] = []

    def add(order_number: str, order_date: str, customer: str, product_id: str, change: int) -> None:
        entries.append(
            LedgerEntry(
                id=f"activity-{len(entries) + 1:03d}",
                timestamp=_order_date(order_date),
                type=EntryType.INVOICE,
                order_number=order_number,
                product_updates=[ProductUpdate(product_id=product_id, change=change)],
                user_id="system",
                user_name="System",
                notes=f"{customer} - Order #{order_number}",
            )
        )

    for package_type, order_date, order_numbers in PACKAGE_ORDERS:
        multiplier = get_package(package_type).multiplier
        for order_number in order_numbers:
            for product_id in PRODUCT_IDS:
                add(order_number, order_date, HISTORICAL_CUSTOMER, product_id, -multiplier)

    for order_number, order_date, customer, product_id, change in INDIVIDUAL_ORDERS:
        add(order_number, order_date, customer, product_id, change)

    return entries


def seed_order_numbers() -> frozenset[str]:
    """Order numbers already covered by the seed history."""
    return frozenset(e.order_number for e in generate_seed_history() if e.order_number)
