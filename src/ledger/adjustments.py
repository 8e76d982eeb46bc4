"""
Manual stock adjustments submitted from the dashboard.

The adjustments sheet is the system of record: a validated adjustment is
posted to the sheet's write webhook and a full sync is run so the cache picks
it up through the adjustments feed. Nothing is written to the local ledger
directly, so an adjustment can never be counted twice.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Protocol

from pydantic import BaseModel, Field, ValidationError, field_validator

from .catalog import Catalog
from .models import AdjustmentType, BulkTarget, LedgerEntry, ProductUpdate, User
from .store import LocalCache
from .sync import SyncResult, SyncService

logger = logging.getLogger(__name__)


class AdjustmentRequest(BaseModel):
    """A user-initiated manual stock change."""

    product: BulkTarget | str = Field(
        union_mode="left_to_right",
        description="Product id, or BulkTarget.ALL for every SKU",
    )
    quantity: int = Field(gt=0, description="Units to add or remove (positive)")
    adjustment_type: AdjustmentType
    notes: str = Field(description="Reason for the adjustment")
    timestamp: datetime | None = Field(default=None, description="When it happened; defaults to now")

    @field_validator("notes")
    @classmethod
    def notes_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("a reason is required")
        return value


class AdjustmentValidationError(ValueError):
    """Adjustment rejected before anything was written."""

    def __init__(
        self,
        field: str,
        message: str,
        product_id: str | None = None,
        shortfall: int | None = None,
    ):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message
        self.product_id = product_id
        self.shortfall = shortfall


class AdjustmentWriter(Protocol):
    def post_adjustment(self, payload: dict) -> bool: ...


@dataclass
class AdjustmentResult:
    """Entries built for the adjustment and what happened to them."""

    entries: list[LedgerEntry]
    written: bool
    sync: SyncResult | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdjustmentService:
    """
    Validates manual adjustments and forwards them to the write webhook.

    Validation rules:
    - quantity is a positive integer, notes are non-blank, type is known
    - product is a catalog id or BulkTarget.ALL
    - timestamp is not in the future
    - viewers cannot submit
    - deductions may not take any affected SKU below zero; the whole
      submission is rejected, reporting the first SKU short and by how much
    """

    def __init__(
        self,
        cache: LocalCache,
        writer: AdjustmentWriter,
        sync: SyncService | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cache = cache
        self.writer = writer
        self.sync = sync
        self.clock = clock

    def validate(self, request: AdjustmentRequest | dict, user: User) -> AdjustmentRequest:
        """Return a validated request or raise AdjustmentValidationError."""
        if isinstance(request, dict):
            try:
                request = AdjustmentRequest.model_validate(request)
            except ValidationError as e:
                error = e.errors()[0]
                field = str(error["loc"][0]) if error.get("loc") else "request"
                raise AdjustmentValidationError(field, error["msg"]) from e

        if not user.can_edit:
            raise AdjustmentValidationError("user", f"{user.name} ({user.role}) cannot make adjustments")

        if request.timestamp is not None:
            timestamp = request.timestamp
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            if timestamp > self.clock():
                raise AdjustmentValidationError("timestamp", "date cannot be in the future")
        return request

    def _targets(self, request: AdjustmentRequest, catalog: Catalog) -> list[str]:
        if request.product is BulkTarget.ALL:
            return list(catalog)
        if request.product not in catalog:
            raise AdjustmentValidationError("product", f"unknown product {request.product!r}")
        return [request.product]

    def build_entries(self, request: AdjustmentRequest, user: User, catalog: Catalog) -> list[LedgerEntry]:
        """
        One entry per affected SKU, with before/after previewed from the
        cached catalog. Raises if a deduction would go negative.
        """
        targets = self._targets(request, catalog)
        change = request.adjustment_type.sign * request.quantity

        if request.adjustment_type.is_deduction:
            for product_id in targets:
                stock = catalog[product_id].stock
                if stock + change < 0:
                    raise AdjustmentValidationError(
                        "quantity",
                        f"insufficient stock for {catalog[product_id].name}: "
                        f"have {stock}, need {request.quantity}",
                        product_id=product_id,
                        shortfall=request.quantity - stock,
                    )

        timestamp = request.timestamp or self.clock()
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        entries = []
        for product_id in targets:
            stock = catalog[product_id].stock
            entries.append(
                LedgerEntry(
                    id=f"manual-{uuid.uuid4().hex[:12]}",
                    timestamp=timestamp,
                    type=request.adjustment_type.entry_type,
                    product_updates=[
                        ProductUpdate(product_id=product_id, change=change, before=stock, after=stock + change)
                    ],
                    user_id=user.id,
                    user_name=user.name,
                    notes=request.notes,
                )
            )
        return entries

    def to_payload(self, request: AdjustmentRequest, catalog: Catalog, timestamp: datetime) -> dict:
        """Row for the adjustments sheet: {date, product, quantity, type, reason}."""
        if request.product is BulkTarget.ALL:
            product = "All"
        else:
            product = catalog[request.product].name
        return {
            "date": timestamp.isoformat(),
            "product": product,
            "quantity": request.quantity,
            "type": request.adjustment_type.value,
            "reason": request.notes,
        }

    def submit(self, request: AdjustmentRequest | dict, user: User) -> AdjustmentResult:
        request = self.validate(request, user)
        catalog = self.cache.read_catalog()
        entries = self.build_entries(request, user, catalog)

        payload = self.to_payload(request, catalog, entries[0].timestamp)
        written = self.writer.post_adjustment(payload)
        if not written:
            logger.warning("Adjustment by %s was not accepted by the write endpoint: %s", user.name, payload)
            return AdjustmentResult(entries=entries, written=False)

        logger.info("Adjustment by %s written: %s", user.name, payload)
        sync_result = self.sync.run() if self.sync is not None else None
        return AdjustmentResult(entries=entries, written=True, sync=sync_result)
