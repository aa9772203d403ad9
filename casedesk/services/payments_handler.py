"""Payments handler."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from datetime import date
from typing import Any

from casedesk.services.base_handler import BaseHandler, Record
from casedesk.utils.ids import new_temp_id


def _amount(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


class PaymentsHandler(BaseHandler):
    path = "payments"

    @property
    def payments(self) -> list[Record]:
        return self.get_all()

    @property
    def payment_count(self) -> int:
        return len(self._records)

    @property
    def total(self) -> float:
        return round(sum(_amount(payment.get("amount")) for payment in self._records), 2)

    @property
    def payments_by_method(self) -> dict[str, list[Record]]:
        grouped: dict[str, list[Record]] = defaultdict(list)
        for payment in self.get_all():
            grouped[payment.get("method") or "other"].append(payment)
        return dict(grouped)

    @property
    def total_by_method(self) -> dict[str, float]:
        return {
            method: round(sum(_amount(payment.get("amount")) for payment in payments), 2)
            for method, payments in self.payments_by_method.items()
        }

    def get_payment(self, payment_id: str) -> Record | None:
        return self.find_by_id(payment_id)

    def add_payment(
        self,
        amount: float,
        method: str,
        payment_date: str | None = None,
        reference: str | None = None,
        notes: str | None = None,
        allocations: Mapping[str, float] | None = None,
    ) -> Record | None:
        payment = {
            "id": new_temp_id(),
            "date": payment_date or date.today().isoformat(),
            "method": method,
            "amount": amount,
            "reference": reference,
            "notes": notes,
            "allocations": dict(allocations) if allocations is not None else None,
        }
        if not self.add_record(payment):
            return None
        return dict(payment)

    def remove_payment(self, payment_id: str) -> bool:
        return self.remove_by_id(payment_id)

    def apply_payment_update(self, payment: Mapping[str, Any]) -> bool:
        return self.apply_update(payment)

    def update_amount(self, payment_id: str, amount: float) -> bool:
        return self.update_fields(payment_id, amount=amount)

    def update_method(self, payment_id: str, method: str) -> bool:
        return self.update_fields(payment_id, method=method)

    def update_reference(self, payment_id: str, reference: str | None) -> bool:
        return self.update_fields(payment_id, reference=reference)

    def update_notes(self, payment_id: str, notes: str | None) -> bool:
        return self.update_fields(payment_id, notes=notes)

    def update_date(self, payment_id: str, payment_date: str) -> bool:
        return self.update_fields(payment_id, date=payment_date)

    def update_allocations(self, payment_id: str, allocations: Mapping[str, float] | None) -> bool:
        return self.update_fields(payment_id, allocations=dict(allocations) if allocations is not None else None)
