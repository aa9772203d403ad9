"""Catalog and tax-rate lookup used when adding items from the product catalog."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class CatalogItem:
    id: str
    description: str
    price: float
    cost: float = 0.0
    sku: str = ""
    tax_category: str | None = None


class CatalogService(Protocol):
    def get_item_by_id(self, item_id: str) -> CatalogItem | None: ...

    def get_tax_rate_for_category(self, category: str | None) -> float:
        """Tax rate as a percentage, e.g. ``8`` for 8%."""
        ...


class InMemoryCatalog:
    """Read-only catalog served from already-fetched data; lookups never touch the network."""

    def __init__(
        self,
        items: Iterable[CatalogItem] = (),
        tax_rates: Mapping[str, float] | None = None,
    ) -> None:
        self._items = {item.id: item for item in items}
        self._tax_rates = dict(tax_rates or {})

    def get_item_by_id(self, item_id: str) -> CatalogItem | None:
        return self._items.get(item_id)

    def get_tax_rate_for_category(self, category: str | None) -> float:
        if category is None:
            return 0.0
        return float(self._tax_rates.get(category, 0.0))
