"""
CSV export of the current inventory and the activity log.
"""

import csv
from datetime import date
from pathlib import Path

import pandas as pd

from .catalog import Catalog
from .models import LedgerEntry

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _format_timestamp(value) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value is not None else ""


def build_inventory_export(catalog: Catalog) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Product Name": p.name,
                "SKU": p.sku,
                "Current Stock": str(p.stock),
                "Cost Price (RM)": f"{p.cost_price:.2f}",
                "Retail Price (RM)": f"{p.retail_price:.2f}",
                "Total Value (RM)": f"{p.retail_value:.2f}",
                "Last Updated": _format_timestamp(p.last_updated),
            }
            for p in catalog.values()
        ],
        columns=[
            "Product Name",
            "SKU",
            "Current Stock",
            "Cost Price (RM)",
            "Retail Price (RM)",
            "Total Value (RM)",
            "Last Updated",
        ],
    )


def build_activity_export(catalog: Catalog, ledger: list[LedgerEntry]) -> pd.DataFrame:
    """One row per ledger entry; multi-product entries join with '; '."""

    def product_name(product_id: str) -> str:
        product = catalog.get(product_id)
        return product.name if product else product_id

    return pd.DataFrame(
        [
            {
                "Date/Time": _format_timestamp(entry.timestamp),
                "Transaction ID": entry.id,
                "Type": entry.type.value,
                "Order Number": entry.order_number or "N/A",
                "Products": "; ".join(product_name(u.product_id) for u in entry.product_updates),
                "Quantity Changes": "; ".join(f"{u.change:+d}" if u.change else "0" for u in entry.product_updates),
                "User": entry.user_name,
                "Notes": entry.notes,
            }
            for entry in ledger
        ],
        columns=[
            "Date/Time",
            "Transaction ID",
            "Type",
            "Order Number",
            "Products",
            "Quantity Changes",
            "User",
            "Notes",
        ],
    )


def to_csv_text(df: pd.DataFrame) -> str:
    """CSV with every cell quoted."""
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def export_to_csv(
    catalog: Catalog,
    ledger: list[LedgerEntry],
    output_dir: Path | str,
    today: date | None = None,
) -> tuple[Path, Path]:
    """Write the inventory and activity CSVs; returns their paths."""
    today = today or date.today()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    inventory_path = output_dir / f"ahad-inventory-{today:%Y-%m-%d}.csv"
    activity_path = output_dir / f"ahad-activity-log-{today:%Y-%m-%d}.csv"

    inventory_path.write_text(to_csv_text(build_inventory_export(catalog)), encoding="utf-8")
    activity_path.write_text(to_csv_text(build_activity_export(catalog, ledger)), encoding="utf-8")
    return inventory_path, activity_path
