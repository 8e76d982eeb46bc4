"""
Ledger data model shared by the feeds, the reconciliation engine and the cache.

A ledger entry is an append-only fact: something happened to stock at a point
in time. Each entry carries one or more per-product updates. The `before` and
`after` figures are never trusted from a source row; they are filled in by
the replay step.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# Sort position for entries whose date could not be parsed
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class EntryType(str, Enum):
    """Kind of stock-affecting event recorded in the ledger."""

    INVOICE = "invoice"
    MANUAL = "manual"
    TEMPORARY_OUT = "temporary-out"
    RETURN = "return"
    DAMAGED = "damaged"
    MISSING = "missing"
    EXPIRED = "expired"
    SAMPLE_DEMO = "sample-demo"


class AdjustmentType(str, Enum):
    """Tag a user or the adjustments sheet puts on a manual stock change."""

    ADD = "add"
    REMOVE = "remove"
    TEMPORARY_OUT = "temporary-out"
    RETURN = "return"
    DAMAGED = "damaged"
    MISSING = "missing"
    EXPIRED = "expired"
    SAMPLE_DEMO = "sample-demo"

    @property
    def is_deduction(self) -> bool:
        return self in DEDUCTION_TYPES

    @property
    def sign(self) -> int:
        return -1 if self.is_deduction else 1

    @property
    def entry_type(self) -> EntryType:
        """Ledger type an adjustment of this kind is recorded under."""
        if self in (AdjustmentType.ADD, AdjustmentType.REMOVE):
            return EntryType.MANUAL
        return EntryType(self.value)

    @classmethod
    def parse(cls, value: Any) -> "AdjustmentType | None":
        """Map free text to a known tag, or None when it is not one."""
        if value is None:
            return None
        text = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return cls(text)
        except ValueError:
            return None


DEDUCTION_TYPES = frozenset(
    {
        AdjustmentType.REMOVE,
        AdjustmentType.TEMPORARY_OUT,
        AdjustmentType.DAMAGED,
        AdjustmentType.MISSING,
        AdjustmentType.EXPIRED,
        AdjustmentType.SAMPLE_DEMO,
    }
)


class BulkTarget(str, Enum):
    """Adjustment target meaning "every SKU in the catalog"."""

    ALL = "all"


@dataclass
class ProductUpdate:
    """Stock movement of one product inside a ledger entry."""

    product_id: str
    change: int
    before: int = 0
    after: int = 0

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "before": self.before,
            "after": self.after,
            "change": self.change,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProductUpdate":
        return cls(
            product_id=str(data["productId"]),
            change=int(data["change"]),
            before=int(data.get("before", 0)),
            after=int(data.get("after", 0)),
        )


@dataclass
class LedgerEntry:
    """A single stock-affecting event."""

    id: str
    timestamp: datetime
    type: EntryType
    product_updates: list[ProductUpdate] = field(default_factory=list)
    order_number: str | None = None
    user_id: str = "system"
    user_name: str = "System"
    notes: str = ""

    @property
    def product_ids(self) -> list[str]:
        return [u.product_id for u in self.product_updates]

    def copy(self) -> "LedgerEntry":
        """Return a copy whose product updates can be rewritten independently."""
        return replace(
            self, product_updates=[replace(u) for u in self.product_updates]
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "orderNumber": self.order_number,
            "productUpdates": [u.to_dict() for u in self.product_updates],
            "userId": self.user_id,
            "userName": self.user_name,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerEntry":
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            id=str(data["id"]),
            timestamp=timestamp,
            type=EntryType(data["type"]),
            product_updates=[
                ProductUpdate.from_dict(u) for u in data.get("productUpdates", [])
            ],
            order_number=data.get("orderNumber"),
            user_id=data.get("userId", "system"),
            user_name=data.get("userName", "System"),
            notes=data.get("notes", ""),
        )


@dataclass(frozen=True)
class User:
    """Person an adjustment is attributed to."""

    id: str
    name: str
    role: str = "staff"  # "admin", "staff" or "viewer"

    @property
    def can_edit(self) -> bool:
        return self.role in ("admin", "staff")


SYSTEM_USER = User(id="system", name="System", role="admin")
