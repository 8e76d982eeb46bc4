"""
Inbound invoice processing for an external order system.

An order is validated as a whole before any stock moves: duplicate order
numbers, unknown products and insufficient stock all reject the complete
order.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Literal

from pydantic import BaseModel, Field

from .catalog import Catalog
from .models import SYSTEM_USER, EntryType, LedgerEntry, ProductUpdate, User
from .resolver import LineItemResolver
from .seed import seed_order_numbers
from .store import LocalCache

logger = logging.getLogger(__name__)


RejectionReason = Literal["duplicate_order", "product_not_found", "insufficient_stock"]


class LineItem(BaseModel):
    """One line of an invoice."""

    product_name: str = Field(min_length=1, description="Package or product name")
    quantity: int = Field(default=1, gt=0)


class InvoiceRequest(BaseModel):
    """An order to deduct from stock."""

    order_number: str = Field(min_length=1)
    order_date: datetime | None = Field(default=None, description="Defaults to now")
    customer: str = ""
    line_items: list[LineItem] = Field(min_length=1)


class StockChange(BaseModel):
    before: int
    after: int
    change: int


class InvoiceResult(BaseModel):
    """Outcome of processing one invoice."""

    success: bool
    message: str
    order_number: str
    reason: RejectionReason | None = None
    stock_updates: dict[str, StockChange] = Field(default_factory=dict)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvoiceProcessor:
    """
    Applies invoices to the local cache.

    Usage:
        processor = InvoiceProcessor(cache)
        result = processor.process(InvoiceRequest(
            order_number="2001",
            customer="Jane",
            line_items=[LineItem(product_name="Gold Package", quantity=1)],
        ))
    """

    def __init__(
        self,
        cache: LocalCache,
        resolver: LineItemResolver | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cache = cache
        self.resolver = resolver or LineItemResolver()
        self.clock = clock

    def _reject(self, request: InvoiceRequest, reason: RejectionReason, message: str) -> InvoiceResult:
        logger.warning("Invoice %s rejected (%s): %s", request.order_number, reason, message)
        return InvoiceResult(
            success=False,
            message=message,
            order_number=request.order_number,
            reason=reason,
        )

    def resolve_deductions(self, request: InvoiceRequest) -> tuple[dict[str, int], str | None]:
        """Total units per SKU, or the first product name that did not resolve."""
        deductions: dict[str, int] = {}
        for item in request.line_items:
            units = self.resolver.resolve_units(item.product_name)
            if not units:
                return {}, item.product_name
            for product_id, qty in units.items():
                deductions[product_id] = deductions.get(product_id, 0) + qty * item.quantity
        return deductions, None

    def _find_shortage(self, deductions: dict[str, int], catalog: Catalog) -> str | None:
        for product_id, qty in deductions.items():
            product = catalog.get(product_id)
            if product is None:
                return f"Product {product_id} is not in the catalog"
            if product.stock < qty:
                return (
                    f"Insufficient stock for {product.name}: "
                    f"have {product.stock}, need {qty} (short {qty - product.stock})"
                )
        return None

    def process(self, request: InvoiceRequest | dict, user: User = SYSTEM_USER) -> InvoiceResult:
        if isinstance(request, dict):
            request = InvoiceRequest.model_validate(request)

        # Seed orders count even before the first sync has filled the cache
        ledger = self.cache.read_ledger()
        if request.order_number in seed_order_numbers() or any(
            entry.order_number == request.order_number for entry in ledger
        ):
            return self._reject(request, "duplicate_order", f"Order #{request.order_number} was already processed")

        deductions, unmatched = self.resolve_deductions(request)
        if unmatched is not None:
            return self._reject(request, "product_not_found", f"Product not found: {unmatched}")

        catalog = self.cache.read_catalog()
        shortage = self._find_shortage(deductions, catalog)
        if shortage is not None:
            return self._reject(request, "insufficient_stock", shortage)

        timestamp = request.order_date or self.clock()
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        names = ", ".join(f"{item.product_name} (x{item.quantity})" for item in request.line_items)
        entries: list[LedgerEntry] = []
        stock_updates: dict[str, StockChange] = {}

        # Catalog order keeps entry ids and summaries stable
        for product_id, product in catalog.items():
            qty = deductions.get(product_id)
            if not qty:
                continue
            before = product.stock
            product.stock = before - qty
            product.last_updated = timestamp

            entries.append(
                LedgerEntry(
                    id=f"invoice-{request.order_number}-{product_id}",
                    timestamp=timestamp,
                    type=EntryType.INVOICE,
                    order_number=request.order_number,
                    product_updates=[
                        ProductUpdate(product_id=product_id, change=-qty, before=before, after=product.stock)
                    ],
                    user_id=user.id,
                    user_name=user.name,
                    notes=f"{names} - Order #{request.order_number} - {request.customer}".rstrip(" -"),
                )
            )
            stock_updates[product_id] = StockChange(before=before, after=product.stock, change=-qty)

        self.cache.append(entries, catalog)
        logger.info("Invoice %s applied: %s", request.order_number, {k: v.change for k, v in stock_updates.items()})

        return InvoiceResult(
            success=True,
            message="Inventory updated successfully",
            order_number=request.order_number,
            stock_updates=stock_updates,
        )
