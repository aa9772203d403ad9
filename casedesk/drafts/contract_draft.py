"""
Editable contract drafts.

A draft is a plain JSON-compatible tree (dicts, lists, scalars) using the
backend's field names, so string paths such as ``sale.items.0.quantity`` can
address any field and double as error keys. The draft is only ever replaced,
never mutated in place: ``apply_patch`` returns a new tree.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from casedesk.core.enums import (
    NEW_CONTRACT_ID,
    TEMP_SALE_ID,
    NeedType,
    SaleStatus,
    SaleType,
    parse_roles,
    role_tags,
    roles_to_flags,
)
from casedesk.utils.paths import get_value_by_path, set_value_by_path

ContractDraft = dict[str, Any]

# Server-computed figures; the backend recalculates them on every commit.
TOTAL_FIELDS = ("subtotal", "taxTotal", "discountTotal", "grandTotal")
CONTRACT_TOTAL_FIELDS = TOTAL_FIELDS + ("amountPaid", "balanceDue")


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _date_only(value: Any) -> str | None:
    if not value:
        return None
    return str(value).split("T", 1)[0]


def _mappings(value: Any) -> list[Mapping[str, Any]]:
    """Entries of a list field that are objects; anything else in the list is dropped."""
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, Mapping)]


def find_primary_sale(document: Mapping[str, Any]) -> Mapping[str, Any] | None:
    for sale in _mappings(document.get("sales")):
        if sale.get("saleType") == SaleType.CONTRACT:
            return sale
    return None


def _editable_person(person: Mapping[str, Any]) -> dict[str, Any]:
    editable = copy.deepcopy(dict(person))
    editable["roles"] = role_tags(parse_roles(person.get("roles")))
    return editable


def _editable_item(item: Mapping[str, Any]) -> dict[str, Any]:
    editable = copy.deepcopy(dict(item))
    editable["salesTax"] = editable.get("salesTax") or []
    editable["discounts"] = editable.get("discounts") or []
    return editable


def create_empty(location_id: str | None = "") -> ContractDraft:
    """Create the draft for a contract that does not exist on the backend yet."""
    now = _utcnow_iso()
    return {
        "id": NEW_CONTRACT_ID,
        "contractNumber": "",
        "locationId": location_id or "",
        "needType": int(NeedType.AT_NEED),
        "prePrintedContractNumber": None,
        "people": [],
        "sale": {
            "id": TEMP_SALE_ID,
            "saleDate": _today(),
            "items": [],
        },
        "payments": [],
        "meta": {
            "status": int(SaleStatus.DRAFT),
            "dateExecuted": None,
            "dateSigned": None,
            "isCancelled": False,
            "createdAt": now,
            "updatedAt": now,
        },
    }


def from_persisted(document: Mapping[str, Any]) -> ContractDraft:
    """
    Build a draft from a persisted contract document.

    Everything is deep-copied; editing the draft never reaches back into
    ``document``. The primary (CONTRACT type) sale becomes the single editable
    ``sale`` slot and its date is cut down to calendar-date precision.
    """
    primary_sale = find_primary_sale(document) or {}
    status = primary_sale.get("saleStatus")

    return {
        "id": document.get("id") or NEW_CONTRACT_ID,
        "contractNumber": document.get("contractNumber") or "",
        "locationId": document.get("locationId") or "",
        "needType": document.get("needType", int(NeedType.AT_NEED)),
        "prePrintedContractNumber": document.get("prePrintedContractNumber"),
        "people": [_editable_person(person) for person in _mappings(document.get("people"))],
        "sale": {
            "id": primary_sale.get("id") or TEMP_SALE_ID,
            "saleDate": _date_only(primary_sale.get("saleDate")),
            "items": [_editable_item(item) for item in _mappings(primary_sale.get("items"))],
        },
        "payments": [copy.deepcopy(dict(payment)) for payment in _mappings(document.get("payments"))],
        "meta": {
            "status": int(SaleStatus.DRAFT) if status is None else status,
            "dateExecuted": document.get("dateExecuted"),
            "dateSigned": document.get("dateSigned"),
            "isCancelled": bool(document.get("isCancelled", False)),
            "createdAt": document.get("dateCreated"),
            "updatedAt": document.get("dateLastModified"),
        },
    }


def reset(document: Mapping[str, Any]) -> ContractDraft:
    return from_persisted(document)


def snapshot(draft: ContractDraft) -> ContractDraft:
    """Deep copy taken at load/save time; only ever compared, never edited."""
    return copy.deepcopy(draft)


def _normalized(draft: Mapping[str, Any]) -> dict[str, Any]:
    normalized = dict(draft)
    meta = dict(normalized.get("meta") or {})
    meta["updatedAt"] = None
    normalized["meta"] = meta
    return normalized


def drafts_equal(first: ContractDraft | None, second: ContractDraft | None) -> bool:
    """Structural equality ignoring ``meta.updatedAt``."""
    if first is None or second is None:
        return first is second
    return _normalized(first) == _normalized(second)


def get_value(draft: ContractDraft, path: str) -> Any:
    return get_value_by_path(draft, path)


def apply_patch(draft: ContractDraft, path: str, value: Any) -> ContractDraft:
    """
    Return a new draft with ``value`` written at ``path`` and ``meta.updatedAt`` refreshed.

    Empty or structurally invalid paths return ``draft`` unchanged (same object).
    """
    updated = set_value_by_path(draft, path, value)
    if updated is draft:
        return draft
    return set_value_by_path(updated, "meta.updatedAt", _utcnow_iso())


def _persisted_person(person: Mapping[str, Any]) -> dict[str, Any]:
    persisted = copy.deepcopy(dict(person))
    persisted["roles"] = roles_to_flags(parse_roles(person.get("roles")))
    return persisted


def to_persisted_shape(draft: ContractDraft) -> dict[str, Any]:
    """
    Convert a draft back into the backend's contract document shape.

    Sentinel ids become ``None`` so the backend inserts; computed totals are
    zeroed because the backend recalculates them.
    """
    contract_id = None if draft.get("id") == NEW_CONTRACT_ID else draft.get("id")
    sale = draft.get("sale") or {}
    meta = draft.get("meta") or {}

    primary_sale: dict[str, Any] = {
        "id": None if sale.get("id") == TEMP_SALE_ID else sale.get("id"),
        "contractId": contract_id,
        "saleDate": sale.get("saleDate"),
        "saleType": int(SaleType.CONTRACT),
        "saleStatus": meta.get("status", int(SaleStatus.DRAFT)),
        "items": copy.deepcopy(list(sale.get("items") or [])),
    }
    primary_sale.update({field: 0 for field in TOTAL_FIELDS})

    contract: dict[str, Any] = {
        "id": contract_id,
        "contractNumber": draft.get("contractNumber"),
        "prePrintedContractNumber": draft.get("prePrintedContractNumber"),
        "locationId": draft.get("locationId"),
        "needType": draft.get("needType"),
        "dateExecuted": meta.get("dateExecuted"),
        "dateSigned": meta.get("dateSigned"),
        "isCancelled": bool(meta.get("isCancelled", False)),
        "sales": [primary_sale],
        "people": [_persisted_person(person) for person in draft.get("people") or []],
        "payments": copy.deepcopy(list(draft.get("payments") or [])),
    }
    contract.update({field: 0 for field in CONTRACT_TOTAL_FIELDS})
    return contract
