"""Sale line items handler with live totals for display."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from casedesk.services.base_handler import BaseHandler, HandlerContext, Record
from casedesk.services.catalog_service import CatalogService, InMemoryCatalog
from casedesk.utils.ids import is_new_entity, new_temp_id


def _amount(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def compute_tax_amount(quantity: Any, unit_price: Any, rate: Any) -> float:
    """Tax for one tax entry; ``rate`` is a percentage."""
    return round(_amount(quantity) * _amount(unit_price) * _amount(rate) / 100, 2)


def recalculate_item(item: Mapping[str, Any]) -> Record:
    updated = copy.deepcopy(dict(item))
    enabled = updated.get("salesTaxEnabled", True)
    updated["salesTax"] = [
        {
            **entry,
            "taxAmount": (
                compute_tax_amount(updated.get("quantity"), updated.get("unitPrice"), entry.get("taxRate"))
                if enabled
                else 0.0
            ),
        }
        for entry in updated.get("salesTax") or []
    ]
    return updated


class ItemsHandler(BaseHandler):
    """
    Manages ``sale.items``.

    Totals cover active (non-cancelled) items only and are for live display;
    the backend recomputes the figures of record on save.
    """

    path = "sale.items"

    def __init__(self, context: HandlerContext | None = None, catalog: CatalogService | None = None) -> None:
        super().__init__(context)
        self.catalog = catalog or InMemoryCatalog()

    # Views

    @property
    def items(self) -> list[Record]:
        return self.get_all()

    @property
    def active_items(self) -> list[Record]:
        return [copy.deepcopy(item) for item in self._records if not item.get("isCancelled")]

    @property
    def item_count(self) -> int:
        return len(self.active_items)

    @property
    def subtotal(self) -> float:
        return round(
            sum(_amount(item.get("quantity")) * _amount(item.get("unitPrice")) for item in self.active_items),
            2,
        )

    @property
    def tax_total(self) -> float:
        return round(
            sum(
                _amount(entry.get("taxAmount"))
                for item in self.active_items
                for entry in item.get("salesTax") or []
            ),
            2,
        )

    @property
    def discount_total(self) -> float:
        return round(
            sum(
                _amount(discount.get("amount"))
                for item in self.active_items
                for discount in item.get("discounts") or []
            ),
            2,
        )

    @property
    def grand_total(self) -> float:
        return round(self.subtotal + self.tax_total - self.discount_total, 2)

    def get_item(self, item_id: str) -> Record | None:
        return self.find_by_id(item_id)

    # Mutations

    def _new_item(
        self,
        description: str,
        unit_price: float,
        quantity: float,
        cost: float,
        tax_rate: float,
        item_id: str | None,
        sales_tax_enabled: bool,
    ) -> Record:
        sales_tax = [{"id": new_temp_id(), "taxRate": tax_rate, "taxAmount": 0.0}] if tax_rate else []
        item = {
            "id": new_temp_id(),
            "itemId": item_id,
            "description": description,
            "quantity": quantity,
            "unitPrice": unit_price,
            "cost": cost,
            "bookPrice": unit_price,
            "bookCost": cost,
            "salesTaxEnabled": sales_tax_enabled,
            "isCancelled": False,
            "ordinal": len(self._records),
            "salesTax": sales_tax,
            "discounts": [],
        }
        return recalculate_item(item)

    def add_from_catalog(self, catalog_item_id: str, quantity: float = 1) -> Record | None:
        if not self.guard_edit():
            return None
        catalog_item = self.catalog.get_item_by_id(catalog_item_id)
        if catalog_item is None:
            return None

        rate = self.catalog.get_tax_rate_for_category(catalog_item.tax_category)
        item = self._new_item(
            description=catalog_item.description,
            unit_price=catalog_item.price,
            quantity=quantity,
            cost=catalog_item.cost,
            tax_rate=rate,
            item_id=catalog_item.id,
            sales_tax_enabled=True,
        )
        self._commit([*self._records, item])
        return copy.deepcopy(item)

    def add_custom(
        self,
        description: str,
        unit_price: float,
        quantity: float = 1,
        cost: float = 0.0,
        tax_rate: float = 0.0,
        sales_tax_enabled: bool = True,
    ) -> Record | None:
        if not self.guard_edit():
            return None
        item = self._new_item(
            description=description,
            unit_price=unit_price,
            quantity=quantity,
            cost=cost,
            tax_rate=tax_rate,
            item_id=None,
            sales_tax_enabled=sales_tax_enabled,
        )
        self._commit([*self._records, item])
        return copy.deepcopy(item)

    def soft_remove(self, item_id: str) -> bool:
        """Cancel the item; the row stays so the backend can record the cancellation."""
        return self.update_fields(item_id, isCancelled=True)

    def hard_delete(self, item_id: str) -> bool:
        """Drop the row entirely. Only rows the backend has never seen may be deleted."""
        if not is_new_entity(item_id):
            return False
        return self.remove_by_id(item_id)

    def _update_and_recalculate(self, item_id: str, **fields: Any) -> bool:
        if not self.guard_edit():
            return False
        index = self.find_index(item_id)
        if index == -1:
            return False
        records = list(self._records)
        records[index] = recalculate_item({**records[index], **fields})
        return self._commit(records)

    def update_quantity(self, item_id: str, quantity: float) -> bool:
        return self._update_and_recalculate(item_id, quantity=quantity)

    def update_price(self, item_id: str, unit_price: float) -> bool:
        return self._update_and_recalculate(item_id, unitPrice=unit_price)

    def set_sales_tax_enabled(self, item_id: str, enabled: bool) -> bool:
        return self._update_and_recalculate(item_id, salesTaxEnabled=enabled)

    def update_description(self, item_id: str, description: str) -> bool:
        return self.update_fields(item_id, description=description)

    def add_discount(self, item_id: str, amount: float, description: str = "") -> Record | None:
        if not self.guard_edit():
            return None
        index = self.find_index(item_id)
        if index == -1:
            return None
        discount = {"id": new_temp_id(), "description": description, "amount": amount}
        records = list(self._records)
        item = records[index]
        records[index] = {**item, "discounts": [*(item.get("discounts") or []), discount]}
        self._commit(records)
        return dict(discount)

    def remove_discount(self, item_id: str, discount_id: str) -> bool:
        if not self.guard_edit():
            return False
        index = self.find_index(item_id)
        if index == -1:
            return False
        item = self._records[index]
        discounts = item.get("discounts") or []
        kept = [discount for discount in discounts if discount.get("id") != discount_id]
        if len(kept) == len(discounts):
            return False
        records = list(self._records)
        records[index] = {**item, "discounts": kept}
        return self._commit(records)

    def recalculate_all(self) -> bool:
        if not self.guard_edit():
            return False
        return self._commit([recalculate_item(item) for item in self._records])
