"""
Builds the session save payload submitted to the validate step.

Shape::

    {
        "executeContract": bool, "finalizeContract": bool, "voidContract": bool,
        "contract": {...persisted contract shape, "nameRoles": [...]},
        "payments": [{"state": EntityState, "payment": {...}}],
        "commentFeed": {...} | None,
        "data": {...},
    }

Financial totals are always sent as zero; the backend recalculates them.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from casedesk.core.enums import TEMP_ID_PREFIX, EntityState, SaleStatus, roles_from_flags
from casedesk.drafts.contract_draft import ContractDraft, to_persisted_shape
from casedesk.utils.ids import is_new_entity, new_id

IdSource = Callable[[int], list[str]]

COMMENT_FEED_TYPE = "Contract"


def _local_ids(count: int) -> list[str]:
    return [new_id() for _ in range(count)]


def strip_temp_ids(node: Any) -> Any:
    """Return a copy of ``node`` with client-side ``tmp-`` ids replaced by ``None``."""
    if isinstance(node, dict):
        stripped = {key: strip_temp_ids(value) for key, value in node.items()}
        if isinstance(stripped.get("id"), str) and stripped["id"].startswith(TEMP_ID_PREFIX):
            stripped["id"] = None
        return stripped
    if isinstance(node, list):
        return [strip_temp_ids(value) for value in node]
    return node


def gather_name_roles(contract: dict[str, Any]) -> list[dict[str, Any]]:
    """Collect one role record per (person, role) at the contract level."""
    name_roles: list[dict[str, Any]] = []
    for person in contract.get("people") or []:
        name_id = (person.get("name") or {}).get("id")
        for role in sorted(roles_from_flags(person.get("roles")), key=lambda role: role.flag):
            name_roles.append(
                {
                    "id": None,
                    "contractId": contract.get("id") or "",
                    "nameId": name_id,
                    "roleType": role.value,
                }
            )
    return name_roles


def build_payments(payments: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "state": int(EntityState.NEW if is_new_entity(payment.get("id")) else EntityState.MODIFIED),
            "payment": strip_temp_ids(payment),
        }
        for payment in payments
    ]


def build_save_model(draft: ContractDraft, id_source: IdSource | None = None) -> dict[str, Any]:
    id_source = id_source or _local_ids
    persisted = to_persisted_shape(draft)
    payments = build_payments(persisted.pop("payments", []))

    contract = strip_temp_ids(persisted)
    contract["nameRoles"] = gather_name_roles(contract)

    comment_feed = None
    if contract.get("id") is None:
        feed_id, owner_id = id_source(2)
        contract["commentFeedOwnerId"] = owner_id
        comment_feed = {"id": feed_id, "feedType": COMMENT_FEED_TYPE, "ownerId": owner_id, "entries": []}

    status = (draft.get("meta") or {}).get("status", SaleStatus.DRAFT)
    return {
        "executeContract": status == SaleStatus.EXECUTED,
        "finalizeContract": status == SaleStatus.FINALIZED,
        "voidContract": status == SaleStatus.VOID,
        "contract": contract,
        "payments": payments,
        "commentFeed": comment_feed,
        "data": {
            "forms": [],
            "attributeValues": None,
            "nonMappedFormValues": None,
            "commissionLog": None,
            "trustLog": None,
        },
    }
