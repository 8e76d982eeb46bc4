"""
Inventory analysis functions for the dashboard.

Computes:
- Package availability from current stock
- Stock status per product
- Stock levels over time (reconstructed backwards from current stock)
- Weekly additions vs deductions
- Deductions per product
- Key metrics
"""

from datetime import datetime, timezone

import numpy as np
import pandas as pd

from .catalog import PACKAGES, Catalog
from .models import LedgerEntry


LEDGER_COLUMNS = [
    "timestamp",
    "entry_id",
    "type",
    "order_number",
    "product_id",
    "before",
    "after",
    "change",
    "user_name",
    "notes",
]


def ledger_to_frame(ledger: list[LedgerEntry]) -> pd.DataFrame:
    """
    Flatten the ledger to one row per product update.

    Row order follows the ledger order.
    """
    rows = [
        {
            "timestamp": entry.timestamp,
            "entry_id": entry.id,
            "type": entry.type.value,
            "order_number": entry.order_number,
            "product_id": update.product_id,
            "before": update.before,
            "after": update.after,
            "change": update.change,
            "user_name": entry.user_name,
            "notes": entry.notes,
        }
        for entry in ledger
        for update in entry.product_updates
    ]
    df = pd.DataFrame(rows, columns=LEDGER_COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df


def _utc_timestamp(reference_date: datetime | None) -> pd.Timestamp:
    """Reference date as a UTC Timestamp. Defaults to now."""
    if reference_date is None:
        reference_date = datetime.now(timezone.utc)
    ts = pd.Timestamp(reference_date)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def compute_available_packages(catalog: Catalog) -> dict[str, int]:
    """How many of each package current stock can fill."""
    if not catalog:
        return {p.type: 0 for p in PACKAGES}
    min_stock = max(min(p.stock for p in catalog.values()), 0)
    return {p.type: min_stock // p.multiplier for p in PACKAGES}


def classify_stock_status(stock: int, healthy_above: int = 500, low_from: int = 100) -> str:
    """'healthy' above 500, 'low' from 100, otherwise 'critical'."""
    if stock > healthy_above:
        return "healthy"
    elif stock >= low_from:
        return "low"
    return "critical"


def catalog_to_frame(catalog: Catalog) -> pd.DataFrame:
    """Catalog as a DataFrame with value and status columns."""
    df = pd.DataFrame(
        [
            {
                "id": p.id,
                "name": p.name,
                "sku": p.sku,
                "stock": p.stock,
                "cost_price": p.cost_price,
                "retail_price": p.retail_price,
                "min_alert": p.min_alert,
                "last_updated": p.last_updated,
            }
            for p in catalog.values()
        ],
        columns=["id", "name", "sku", "stock", "cost_price", "retail_price", "min_alert", "last_updated"],
    )
    df["retail_value"] = df["stock"] * df["retail_price"]
    df["cost_value"] = df["stock"] * df["cost_price"]
    df["status"] = df["stock"].apply(classify_stock_status)
    df["below_min_alert"] = df["stock"] < df["min_alert"]
    return df


def compute_stock_over_time(
    catalog: Catalog,
    ledger: list[LedgerEntry],
    days: int = 30,
    reference_date: datetime | None = None,
) -> pd.DataFrame:
    """
    Daily end-of-day stock per product for the last `days` days.

    Works backwards from current stock, undoing each day's changes.

    Returns DataFrame indexed by date (oldest first), one column per product name.
    """
    today = _utc_timestamp(reference_date).normalize()

    frame = ledger_to_frame(ledger)
    frame["day"] = frame["timestamp"].dt.normalize()
    daily_change = frame.groupby(["day", "product_id"])["change"].sum()

    stocks = {pid: p.stock for pid, p in catalog.items()}
    records = []
    for i in range(days):
        day = today - pd.Timedelta(days=i)
        records.append({"date": day, **{catalog[pid].name: stocks[pid] for pid in catalog}})

        # Reverse the changes from this day
        for pid in catalog:
            stocks[pid] -= int(daily_change.get((day, pid), 0))

    result = pd.DataFrame(records).set_index("date").sort_index()
    return result


def compute_weekly_changes(
    ledger: list[LedgerEntry],
    weeks: int = 4,
    reference_date: datetime | None = None,
) -> pd.DataFrame:
    """
    Total additions and deductions per trailing 7-day window.

    Returns DataFrame with week label ("Week 1" oldest), additions, deductions.
    """
    end = _utc_timestamp(reference_date)

    frame = ledger_to_frame(ledger)
    frame["addition"] = np.where(frame["change"] > 0, frame["change"], 0)
    frame["deduction"] = np.where(frame["change"] < 0, -frame["change"], 0)

    records = []
    for i in range(weeks):
        week_start = end - pd.Timedelta(days=(i + 1) * 7)
        week_end = end - pd.Timedelta(days=i * 7)
        in_week = frame[(frame["timestamp"] >= week_start) & (frame["timestamp"] < week_end)]
        records.append(
            {
                "week": f"Week {weeks - i}",
                "additions": int(in_week["addition"].sum()),
                "deductions": int(in_week["deduction"].sum()),
            }
        )

    return pd.DataFrame(list(reversed(records)), columns=["week", "additions", "deductions"])


def compute_product_distribution(catalog: Catalog, ledger: list[LedgerEntry]) -> pd.DataFrame:
    """Total units deducted per product, largest first."""
    frame = ledger_to_frame(ledger)
    deductions = frame[frame["change"] < 0]
    if len(deductions) == 0:
        return pd.DataFrame(columns=["product_id", "name", "units"])

    result = (
        deductions.groupby("product_id")["change"]
        .sum()
        .abs()
        .reset_index()
        .rename(columns={"change": "units"})
    )
    result["name"] = result["product_id"].map(lambda pid: catalog[pid].name if pid in catalog else pid)
    result["units"] = result["units"].astype(int)
    return result[["product_id", "name", "units"]].sort_values(
        ["units", "product_id"], ascending=[False, True]
    ).reset_index(drop=True)


def compute_key_metrics(catalog: Catalog, ledger: list[LedgerEntry]) -> dict:
    """Compute summary metrics for the dashboard."""
    distribution = compute_product_distribution(catalog, ledger)
    most_active = distribution.iloc[0]["name"] if len(distribution) > 0 else "N/A"

    days_with_activity = len({entry.timestamp.date() for entry in ledger})
    avg_daily = len(ledger) / days_with_activity if days_with_activity > 0 else 0.0

    return {
        "total_transactions": len(ledger),
        "most_active_product": most_active,
        "avg_daily_changes": round(avg_daily, 1),
        "total_retail_value": float(sum(p.retail_value for p in catalog.values())),
        "total_cost_value": float(sum(p.cost_value for p in catalog.values())),
        "items_below_min_alert": sum(1 for p in catalog.values() if p.below_min_alert),
        "available_packages": compute_available_packages(catalog),
    }


def filter_activity(
    ledger: list[LedgerEntry],
    search: str = "",
    entry_type: str = "all",
    product_id: str = "all",
) -> list[LedgerEntry]:
    """Filter the activity log by search text (order number or notes), type and product."""
    needle = search.strip().lower()
    result = []
    for entry in ledger:
        if needle and needle not in (entry.order_number or "").lower() and needle not in entry.notes.lower():
            continue
        if entry_type != "all" and entry.type.value != entry_type:
            continue
        if product_id != "all" and product_id not in entry.product_ids:
            continue
        result.append(entry)
    return result
