"""Deterministic per-section rules. No I/O, no exceptions: every problem becomes a path error."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from pydantic import BaseModel, ValidationError

from casedesk.core.context import UserContext
from casedesk.core.enums import LocationType, NeedType, PersonRole, ValidationMode, parse_roles
from casedesk.schemas.contracts import (
    PAYMENT_METHODS,
    GeneralShape,
    ItemsSectionShape,
    PaymentsSectionShape,
    PeopleSectionShape,
)
from casedesk.utils.paths import get_value_by_path

ErrorMap = dict[str, str]


def add_error(errors: ErrorMap, path: str, message: str) -> None:
    """Record ``message`` for ``path``; the first message reported for a path wins."""
    errors.setdefault(path, message)


def shape_errors(model: type[BaseModel], data: Any, prefix: str = "") -> ErrorMap:
    """Run a pydantic shape check and report failures keyed by draft path."""
    errors: ErrorMap = {}
    try:
        model.model_validate(data)
    except ValidationError as exc:
        for issue in exc.errors():
            tokens = [prefix] if prefix else []
            # Bracketed segments such as "[key]" are pydantic markers, not draft keys.
            tokens.extend(str(part) for part in issue["loc"] if not str(part).startswith("["))
            add_error(errors, ".".join(tokens), issue["msg"])
    return errors


def parse_date(value: Any) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def general_errors(
    draft: Mapping[str, Any],
    mode: ValidationMode,
    context: UserContext,
    min_year: int,
    today: date,
) -> ErrorMap:
    errors = shape_errors(GeneralShape, draft)
    need_type = draft.get("needType")

    if _blank(draft.get("locationId")):
        add_error(errors, "locationId", "Location is required")
    if context.current_location_type == LocationType.CORPORATE:
        add_error(errors, "locationId", "Contracts at corporate locations are not supported")
    if need_type not in {member.value for member in NeedType}:
        add_error(errors, "needType", "Need type is required")

    label = context.sale_date_label(need_type)
    sale_date_raw = get_value_by_path(draft, "sale.saleDate")
    if sale_date_raw:
        sale_date = parse_date(sale_date_raw)
        if sale_date is None:
            add_error(errors, "sale.saleDate", f"{label} is not a valid date")
        elif sale_date.year < min_year:
            add_error(errors, "sale.saleDate", f"{label} must be on or after 1/1/{min_year}")
    elif mode is ValidationMode.COMMIT or context.requires_sale_date(need_type):
        add_error(errors, "sale.saleDate", f"{label} is required.")

    date_signed = parse_date(get_value_by_path(draft, "meta.dateSigned"))
    if date_signed is not None and date_signed > today:
        add_error(errors, "meta.dateSigned", "Contract/Sign date cannot be in the future")

    return errors


def _deceased_errors(errors: ErrorMap, index: int, name: Mapping[str, Any], mode: ValidationMode, today: date) -> None:
    prefix = f"people.{index}.name"
    birth_raw = name.get("birthDate")
    death_raw = name.get("deathDate")

    if mode is ValidationMode.COMMIT:
        if not birth_raw:
            add_error(errors, f"{prefix}.birthDate", "Required for deceased")
        if not death_raw:
            add_error(errors, f"{prefix}.deathDate", "Required for deceased")

    birth = parse_date(birth_raw)
    death = parse_date(death_raw)
    if birth and death and birth > death:
        add_error(errors, f"{prefix}.birthDate", "Deceased date of birth cannot be after date of death")
    if birth and birth > today:
        add_error(errors, f"{prefix}.birthDate", "Deceased date of birth cannot be in the future")
    if death and death > today:
        add_error(errors, f"{prefix}.deathDate", "Deceased date of death cannot be in the future")


def people_errors(draft: Mapping[str, Any], mode: ValidationMode, today: date) -> ErrorMap:
    people = draft.get("people")
    errors = shape_errors(PeopleSectionShape, {"people": people if people is not None else []})
    if not isinstance(people, list):
        return errors

    buyers: list[int] = []
    beneficiaries: list[int] = []
    for index, person in enumerate(people):
        if not isinstance(person, Mapping):
            continue
        roles = parse_roles(person.get("roles"))
        if PersonRole.PRIMARY_BUYER in roles:
            buyers.append(index)
        if PersonRole.PRIMARY_BENEFICIARY in roles:
            beneficiaries.append(index)
        name = person.get("name") if isinstance(person.get("name"), Mapping) else {}
        if PersonRole.PRIMARY_BENEFICIARY in roles and name.get("deceased"):
            _deceased_errors(errors, index, name, mode, today)

    if mode is not ValidationMode.COMMIT:
        return errors

    for index in sorted(set(buyers) & set(beneficiaries)):
        add_error(
            errors,
            f"people.{index}.roles",
            "A person cannot be both primary buyer and primary beneficiary",
        )
    if not buyers and not beneficiaries:
        add_error(errors, "people", "A primary buyer and a primary beneficiary are required")
    elif not buyers:
        add_error(errors, "people", "A primary buyer is required")
    elif not beneficiaries:
        add_error(errors, "people", "A primary beneficiary is required")
    for index in buyers[1:]:
        add_error(errors, f"people.{index}.roles", "Only one primary buyer is allowed")
    for index in beneficiaries[1:]:
        add_error(errors, f"people.{index}.roles", "Only one primary beneficiary is allowed")
    if len(people) < 2:
        add_error(errors, "people", "At least a buyer and beneficiary are required")

    for index, person in enumerate(people):
        if not isinstance(person, Mapping):
            continue
        name = person.get("name") if isinstance(person.get("name"), Mapping) else {}
        if _blank(name.get("first")):
            add_error(errors, f"people.{index}.name.first", "First name is required")
        if _blank(name.get("last")):
            add_error(errors, f"people.{index}.name.last", "Last name is required")

    return errors


def items_errors(draft: Mapping[str, Any], mode: ValidationMode) -> ErrorMap:
    items = get_value_by_path(draft, "sale.items")
    errors = shape_errors(ItemsSectionShape, {"items": items if items is not None else []}, prefix="sale")
    if mode is not ValidationMode.COMMIT or not isinstance(items, list):
        return errors

    active = [
        (index, item)
        for index, item in enumerate(items)
        if isinstance(item, Mapping) and not item.get("isCancelled")
    ]
    if not active:
        add_error(errors, "sale.items", "At least one item is required")

    for index, item in active:
        prefix = f"sale.items.{index}"
        if _blank(item.get("description")):
            add_error(errors, f"{prefix}.description", "Description is required")
        quantity = _number(item.get("quantity"))
        if quantity is not None and quantity < 1:
            add_error(errors, f"{prefix}.quantity", "Quantity must be at least 1")
        unit_price = _number(item.get("unitPrice"))
        if unit_price is not None and unit_price < 0:
            add_error(errors, f"{prefix}.unitPrice", "Price cannot be negative")

    return errors


def payments_errors(draft: Mapping[str, Any], mode: ValidationMode) -> ErrorMap:
    payments = draft.get("payments")
    errors = shape_errors(PaymentsSectionShape, {"payments": payments if payments is not None else []})
    if mode is not ValidationMode.COMMIT or not isinstance(payments, list):
        return errors

    for index, payment in enumerate(payments):
        if not isinstance(payment, Mapping):
            continue
        prefix = f"payments.{index}"
        amount = _number(payment.get("amount"))
        if amount is not None and amount <= 0:
            add_error(errors, f"{prefix}.amount", "Amount must be greater than 0")
        if _blank(payment.get("date")):
            add_error(errors, f"{prefix}.date", "Date is required")
        if payment.get("method") not in PAYMENT_METHODS:
            add_error(errors, f"{prefix}.method", "Payment method is required")

    return errors
