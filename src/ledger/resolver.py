"""
Table-driven resolver from free-text product descriptions to per-SKU units.

One ordered list of rules is shared by the sales feed, the adjustments feed
and invoice processing. For each comma-separated item the first matching rule
wins; an "(xN)" suffix multiplies its units.
"""

import re
from dataclasses import dataclass, field

from .catalog import PACKAGES, PRODUCT_IDS
from .models import BulkTarget
from .parsers import ProductNameNormalizer


_QUANTITY_RE = re.compile(r"\(\s*x\s*(\d+)\s*\)", re.IGNORECASE)

BULK_SENTINELS = frozenset({"all", "all products"})


@dataclass(frozen=True)
class MatchRule:
    """Keyword rule: if `keyword` appears in the item, consume `units`."""

    keyword: str
    units: dict[str, int] = field(hash=False)

    def matches(self, normalized_item: str) -> bool:
        return self.keyword in normalized_item


def _package_rules() -> list[MatchRule]:
    # Largest bundles first so "gold" wins over anything else in the item
    ordered = sorted(PACKAGES, key=lambda p: p.multiplier, reverse=True)
    return [
        MatchRule(keyword=p.type, units={pid: p.multiplier for pid in PRODUCT_IDS})
        for p in ordered
    ]


DEFAULT_RULES: tuple[MatchRule, ...] = (
    *_package_rules(),
    MatchRule(keyword="barley", units={"barley-best": 1}),
    MatchRule(keyword="colostrum p", units={"colostrum-p": 1}),
    MatchRule(keyword="colostrum g", units={"colostrum-g": 1}),
)


@dataclass(frozen=True)
class ResolvedItem:
    """Units of one SKU consumed by a resolved line item."""

    product_id: str
    units: int


class LineItemResolver:
    """
    Resolves product text against an ordered rule table.

    Usage:
        resolver = LineItemResolver()
        resolver.resolve("Gold Package (x2), Barley Best")
        # -> 3 x ResolvedItem(units=10) for the bundle, then barley-best x1
    """

    def __init__(self, rules: tuple[MatchRule, ...] | list[MatchRule] = DEFAULT_RULES):
        self.rules = tuple(rules)
        self.normalizer = ProductNameNormalizer()

    def match_item(self, item: str) -> MatchRule | None:
        """Return the first rule matching a single item, if any."""
        normalized = self.normalizer.normalize(_QUANTITY_RE.sub(" ", item))
        for rule in self.rules:
            if rule.matches(normalized):
                return rule
        return None

    def resolve(self, text: str | None) -> list[ResolvedItem]:
        """Resolve comma-separated product text into per-SKU units, in order."""
        if not text:
            return []

        resolved: list[ResolvedItem] = []
        for item in str(text).split(","):
            item = item.strip()
            if not item:
                continue

            rule = self.match_item(item)
            if rule is None:
                continue

            qty_match = _QUANTITY_RE.search(item)
            qty = int(qty_match.group(1)) if qty_match else 1

            for product_id, units in rule.units.items():
                # "(x0)" consumes nothing
                if units * qty:
                    resolved.append(ResolvedItem(product_id=product_id, units=units * qty))
        return resolved

    def resolve_units(self, text: str | None) -> dict[str, int]:
        """Like resolve() but summed per SKU."""
        totals: dict[str, int] = {}
        for item in self.resolve(text):
            totals[item.product_id] = totals.get(item.product_id, 0) + item.units
        return totals

    def resolve_target(self, text: str | None) -> BulkTarget | list[ResolvedItem]:
        """
        Resolve an adjustment target.

        The bulk sentinel only matches when the whole text is "all" or
        "all products"; a product whose name merely contains "all" is not bulk.
        """
        if self.normalizer.normalize(text) in BULK_SENTINELS:
            return BulkTarget.ALL
        return self.resolve(text)
