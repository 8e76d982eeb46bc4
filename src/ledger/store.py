"""
Local cache for the last reconciled catalog and ledger.

Persistence goes through a small `Store` interface so the engine and the
submission paths can be tested without touching disk. Reads never fail: a
missing or corrupt payload degrades to the default catalog and an empty
ledger.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from .catalog import Catalog, Product, default_catalog
from .models import LedgerEntry

logger = logging.getLogger(__name__)


PRODUCTS_KEY = "products"
ACTIVITY_LOG_KEY = "activity-log"


class Store(Protocol):
    """Key-value persistence capability."""

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...

    def clear(self, key: str | None = None) -> None: ...


class MemoryStore:
    """In-process store, used by tests and as a throwaway cache."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        self._data[key] = value

    def clear(self, key: str | None = None) -> None:
        if key is None:
            self._data.clear()
        else:
            self._data.pop(key, None)


class JsonFileStore:
    """One `<key>.json` file per key under a directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        # Replace the whole file in one rename
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def clear(self, key: str | None = None) -> None:
        if key is not None:
            self._path(key).unlink(missing_ok=True)
            return
        if self.root.exists():
            for path in self.root.glob("*.json"):
                path.unlink()


class LocalCache:
    """
    Typed view over a Store holding the catalog and the ledger.

    Both values are read and replaced wholesale.
    """

    def __init__(self, store: Store):
        self.store = store

    def read_catalog(self) -> Catalog:
        raw = self.store.read(PRODUCTS_KEY)
        if raw is None:
            return default_catalog()
        try:
            data = json.loads(raw)
            catalog = {pid: Product.from_dict(item) for pid, item in data.items()}
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Cached catalog is unreadable, using defaults: %s", e)
            return default_catalog()
        return catalog or default_catalog()

    def read_ledger(self) -> list[LedgerEntry]:
        """Return the cached ledger, newest first."""
        raw = self.store.read(ACTIVITY_LOG_KEY)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            return [LedgerEntry.from_dict(item) for item in data]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Cached ledger is unreadable, using empty ledger: %s", e)
            return []

    def write(self, catalog: Catalog, ledger: list[LedgerEntry]) -> None:
        """
        Replace both values, ledger first and catalog last.

        A failure between the two writes leaves the new ledger beside the
        previous catalog; the next sync rebuilds both from seed and feeds.
        """
        self.store.write(ACTIVITY_LOG_KEY, json.dumps([e.to_dict() for e in ledger]))
        self.store.write(
            PRODUCTS_KEY, json.dumps({pid: p.to_dict() for pid, p in catalog.items()})
        )

    def append(self, entries: list[LedgerEntry], catalog: Catalog) -> None:
        """Prepend new entries (newest first) and replace the catalog."""
        ledger = self.read_ledger()
        self.write(catalog, list(reversed(entries)) + ledger)

    def clear(self) -> None:
        self.store.clear(ACTIVITY_LOG_KEY)
        self.store.clear(PRODUCTS_KEY)
