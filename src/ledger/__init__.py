# Core stock ledger components: catalog, ledger model, replay and cache
# Nothing in here knows where the feeds come from

from .catalog import PACKAGES, PRODUCT_IDS, Package, Product, default_catalog
from .models import (
    AdjustmentType,
    BulkTarget,
    EntryType,
    LedgerEntry,
    ProductUpdate,
    User,
)
from .reconciliation import ReconciliationEngine, ReconciliationResult
from .resolver import LineItemResolver
from .seed import generate_seed_history
from .store import JsonFileStore, LocalCache, MemoryStore
from .sync import SyncResult, SyncService
from .adjustments import AdjustmentRequest, AdjustmentService, AdjustmentValidationError
from .invoices import InvoiceProcessor, InvoiceRequest, InvoiceResult

__all__ = [
    "PACKAGES",
    "PRODUCT_IDS",
    "Package",
    "Product",
    "default_catalog",
    "AdjustmentType",
    "BulkTarget",
    "EntryType",
    "LedgerEntry",
    "ProductUpdate",
    "User",
    "ReconciliationEngine",
    "ReconciliationResult",
    "LineItemResolver",
    "generate_seed_history",
    "JsonFileStore",
    "LocalCache",
    "MemoryStore",
    "SyncResult",
    "SyncService",
    "AdjustmentRequest",
    "AdjustmentService",
    "AdjustmentValidationError",
    "InvoiceProcessor",
    "InvoiceRequest",
    "InvoiceResult",
]
