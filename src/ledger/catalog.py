"""
Static product catalog and package definitions.

Three SKUs are tracked. Packages are fixed-ratio bundles that consume the same
number of units of every SKU.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone


INITIAL_STOCK = 1000


@dataclass
class Product:
    """Current-state projection of one SKU."""

    id: str
    name: str
    sku: str
    cost_price: float
    retail_price: float
    min_alert: int = 100
    stock: int = INITIAL_STOCK
    last_updated: datetime | None = None

    @property
    def retail_value(self) -> float:
        return self.stock * self.retail_price

    @property
    def cost_value(self) -> float:
        return self.stock * self.cost_price

    @property
    def below_min_alert(self) -> bool:
        return self.stock < self.min_alert

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "costPrice": self.cost_price,
            "retailPrice": self.retail_price,
            "minAlert": self.min_alert,
            "stock": self.stock,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        last_updated = data.get("lastUpdated")
        if last_updated:
            last_updated = datetime.fromisoformat(last_updated)
            if last_updated.tzinfo is None:
                last_updated = last_updated.replace(tzinfo=timezone.utc)
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            sku=str(data["sku"]),
            cost_price=float(data["costPrice"]),
            retail_price=float(data["retailPrice"]),
            min_alert=int(data.get("minAlert", 100)),
            stock=int(data["stock"]),
            last_updated=last_updated or None,
        )


# Catalog keyed by product id, in display order
Catalog = dict[str, Product]

_DEFAULT_PRODUCTS = (
    Product(id="colostrum-p", name="Ahad Colostrum P", sku="ACP-001", cost_price=37.00, retail_price=175.00),
    Product(id="colostrum-g", name="Ahad Colostrum G", sku="ACG-001", cost_price=48.00, retail_price=150.00),
    Product(id="barley-best", name="Ahad Barley Best", sku="ABB-001", cost_price=24.00, retail_price=135.00),
)

PRODUCT_IDS: tuple[str, ...] = tuple(p.id for p in _DEFAULT_PRODUCTS)


def default_catalog() -> Catalog:
    """Return a fresh catalog at starting stock."""
    return {p.id: replace(p) for p in _DEFAULT_PRODUCTS}


def copy_catalog(catalog: Catalog) -> Catalog:
    return {pid: replace(product) for pid, product in catalog.items()}


@dataclass(frozen=True)
class Package:
    """A bundle that consumes `multiplier` units of every SKU."""

    type: str
    name: str
    multiplier: int
    price: float


PACKAGES: tuple[Package, ...] = (
    Package(type="bronze", name="Bronze Package", multiplier=1, price=775),
    Package(type="silver", name="Silver Package", multiplier=2, price=1350),
    Package(type="gold", name="Gold Package", multiplier=5, price=2930),
)


def get_package(package_type: str) -> Package:
    for package in PACKAGES:
        if package.type == package_type:
            return package
    raise KeyError(f"Unknown package type: {package_type}")
