from __future__ import annotations

from datetime import date, timedelta

import pytest

from casedesk.core.context import UserContext
from casedesk.core.enums import ContractSection, LocationType, ValidationMode
from casedesk.drafts.contract_draft import apply_patch, create_empty, from_persisted
from casedesk.validation.sections import (
    build_validation_error_message,
    clear_section_errors,
    section_for_path,
    validate_all_sections,
    validate_section,
)

SECTIONS = [
    ContractSection.GENERAL,
    ContractSection.PEOPLE,
    ContractSection.ITEMS,
    ContractSection.PAYMENTS,
    ContractSection.REVIEW,
]


def _build_buyer_only_draft():
    draft = create_empty("loc-1")
    return apply_patch(
        draft,
        "people",
        [{"id": "p-1", "roles": ["primary_buyer"], "name": {"first": "Ann", "last": "Buyer"}}],
    )


def _build_messy_drafts(document):
    persisted = from_persisted(document)
    return [
        create_empty(""),
        _build_buyer_only_draft(),
        persisted,
        apply_patch(persisted, "sale.items.0.quantity", "abc"),
        apply_patch(persisted, "payments.0.amount", 0),
        apply_patch(apply_patch(create_empty("loc-1"), "needType", 2), "sale.saleDate", None),
        apply_patch(persisted, "people.1.name.deathDate", "1930-01-01"),
        apply_patch(persisted, "people", "not-a-list"),
    ]


def test_people_commit_requires_primary_beneficiary():
    draft = _build_buyer_only_draft()

    strict = validate_section(draft, ContractSection.PEOPLE, ValidationMode.COMMIT)
    lenient = validate_section(draft, ContractSection.PEOPLE, ValidationMode.DRAFT)

    assert strict.valid is False
    assert any("primary beneficiary" in message for message in strict.errors.values())
    assert lenient.valid is True
    assert lenient.errors == {}


def test_draft_mode_only_requires_location():
    draft = create_empty("")
    result = validate_all_sections(draft, ValidationMode.DRAFT)
    assert result.errors_by_path == {"locationId": "Location is required"}
    assert result.validity[ContractSection.GENERAL] is False
    assert result.validity[ContractSection.PEOPLE] is True
    assert result.validity[ContractSection.REVIEW] is False


def test_commit_mode_requires_items_people_and_positive_payments():
    draft = create_empty("loc-1")
    draft = apply_patch(draft, "payments", [{"id": "pay-1", "date": "2026-01-05", "method": "cash", "amount": 0}])

    result = validate_all_sections(draft, ValidationMode.COMMIT)

    assert result.errors_by_path["sale.items"] == "At least one item is required"
    assert "people" in result.errors_by_path
    assert result.errors_by_path["payments.0.amount"] == "Amount must be greater than 0"
    assert result.valid is False


def test_complete_contract_passes_commit(contract_document):
    result = validate_all_sections(from_persisted(contract_document), ValidationMode.COMMIT)
    assert result.errors_by_path == {}
    assert result.valid is True


def test_people_commit_rules_report_person_paths(contract_document):
    draft = from_persisted(contract_document)
    draft = apply_patch(draft, "people.0.roles", ["primary_beneficiary", "primary_buyer"])
    draft = apply_patch(draft, "people.1.name.first", " ")

    errors = validate_section(draft, ContractSection.PEOPLE, ValidationMode.COMMIT).errors

    assert errors["people.0.roles"] == "A person cannot be both primary buyer and primary beneficiary"
    assert errors["people.1.roles"] == "Only one primary beneficiary is allowed"
    assert errors["people.1.name.first"] == "First name is required"


def test_deceased_beneficiary_dates(contract_document):
    draft = from_persisted(contract_document)
    future = (date.today() + timedelta(days=30)).isoformat()

    swapped = apply_patch(draft, "people.1.name.birthDate", "2026-01-01")
    swapped = apply_patch(swapped, "people.1.name.deathDate", "2000-01-01")
    errors = validate_section(swapped, ContractSection.PEOPLE, ValidationMode.DRAFT).errors
    assert errors == {"people.1.name.birthDate": "Deceased date of birth cannot be after date of death"}

    in_future = apply_patch(draft, "people.1.name.deathDate", future)
    errors = validate_section(in_future, ContractSection.PEOPLE, ValidationMode.DRAFT).errors
    assert errors["people.1.name.deathDate"] == "Deceased date of death cannot be in the future"

    missing = apply_patch(draft, "people.1.name.birthDate", None)
    assert validate_section(missing, ContractSection.PEOPLE, ValidationMode.DRAFT).valid is True
    errors = validate_section(missing, ContractSection.PEOPLE, ValidationMode.COMMIT).errors
    assert errors["people.1.name.birthDate"] == "Required for deceased"


def test_sale_date_rules_follow_location_type():
    draft = apply_patch(create_empty("loc-1"), "sale.saleDate", None)
    cemetery = UserContext(current_location_id="loc-1", current_location_type=LocationType.CEMETERY)
    funeral = UserContext(current_location_id="loc-1", current_location_type=LocationType.FUNERAL)

    assert validate_section(draft, ContractSection.GENERAL, ValidationMode.DRAFT).valid is True
    errors = validate_section(draft, ContractSection.GENERAL, ValidationMode.DRAFT, cemetery).errors
    assert errors == {"sale.saleDate": "Sale date is required."}
    errors = validate_section(draft, ContractSection.GENERAL, ValidationMode.COMMIT, funeral).errors
    assert errors == {"sale.saleDate": "Service date is required."}


def test_general_rejects_corporate_locations_and_old_or_future_dates():
    corporate = UserContext(current_location_id="hq", current_location_type=LocationType.CORPORATE)
    draft = create_empty("hq")
    errors = validate_section(draft, ContractSection.GENERAL, ValidationMode.DRAFT, corporate).errors
    assert errors["locationId"] == "Contracts at corporate locations are not supported"

    old = apply_patch(create_empty("loc-1"), "sale.saleDate", "1850-06-01")
    errors = validate_section(old, ContractSection.GENERAL, ValidationMode.DRAFT).errors
    assert errors["sale.saleDate"] == "Sale date must be on or after 1/1/1900"

    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    signed = apply_patch(create_empty("loc-1"), "meta.dateSigned", tomorrow)
    errors = validate_section(signed, ContractSection.GENERAL, ValidationMode.DRAFT).errors
    assert errors["meta.dateSigned"] == "Contract/Sign date cannot be in the future"


def test_malformed_shapes_become_path_errors(contract_document):
    draft = apply_patch(from_persisted(contract_document), "sale.items.0.quantity", "abc")
    errors = validate_section(draft, ContractSection.ITEMS, ValidationMode.DRAFT).errors
    assert list(errors) == ["sale.items.0.quantity"]

    not_a_list = apply_patch(from_persisted(contract_document), "people", "not-a-list")
    result = validate_section(not_a_list, ContractSection.PEOPLE, ValidationMode.COMMIT)
    assert result.valid is False
    assert "people" in result.errors


def test_validators_never_raise_on_missing_draft():
    result = validate_section(None, ContractSection.REVIEW, ValidationMode.COMMIT)
    assert result.valid is False
    assert result.errors == {"contract": "Contract data is not available"}


def test_commit_is_at_least_as_strict_as_draft(contract_document):
    for draft in _build_messy_drafts(contract_document):
        for section in SECTIONS:
            lenient = validate_section(draft, section, ValidationMode.DRAFT)
            strict = validate_section(draft, section, ValidationMode.COMMIT)
            assert set(lenient.errors) <= set(strict.errors)
            if not lenient.valid:
                assert not strict.valid


def test_review_is_union_of_sections():
    draft = apply_patch(create_empty(""), "payments", [{"id": "x", "amount": -5, "method": "barter"}])
    review = validate_section(draft, ContractSection.REVIEW, ValidationMode.COMMIT).errors
    summary = validate_all_sections(draft, ValidationMode.COMMIT)
    assert review == summary.errors_by_path


@pytest.mark.parametrize(
    ("path", "section"),
    [
        ("locationId", ContractSection.GENERAL),
        ("sale.saleDate", ContractSection.GENERAL),
        ("meta.dateSigned", ContractSection.GENERAL),
        ("people.0.name.first", ContractSection.PEOPLE),
        ("sale.items.2.quantity", ContractSection.ITEMS),
        ("payments.1.amount", ContractSection.PAYMENTS),
        ("sale.id", None),
        ("peopleCount", None),
        ("", None),
    ],
)
def test_section_for_path(path, section):
    assert section_for_path(path) is section


def test_clear_section_errors_uses_prefixes():
    errors = {
        "locationId": "Location is required",
        "people": "A primary buyer is required",
        "people.0.name.first": "First name is required",
        "sale.items.0.quantity": "Quantity must be at least 1",
    }
    assert clear_section_errors(errors, ContractSection.PEOPLE) == {
        "locationId": "Location is required",
        "sale.items.0.quantity": "Quantity must be at least 1",
    }
    assert clear_section_errors(errors, ContractSection.REVIEW) == {}


def test_validation_error_message_names_failing_sections():
    summary = validate_all_sections(create_empty(""), ValidationMode.COMMIT)
    message = build_validation_error_message(summary.validity, summary.errors_by_path)
    assert message.startswith(f"Please fix {len(summary.errors_by_path)} issues in: General")
    assert "People" in message and "Items" in message
    assert build_validation_error_message({ContractSection.GENERAL: True}, {}) is None


def test_unknown_section_is_reported_not_raised():
    result = validate_section(create_empty("loc-1"), "summary", ValidationMode.DRAFT)
    assert result.valid is False
    assert result.errors == {"section": "Unknown section: summary"}

    errors = {"locationId": "Location is required"}
    assert clear_section_errors(errors, "summary") == errors


def test_role_shape_error_is_keyed_by_field_path():
    draft = apply_patch(
        create_empty("loc-1"),
        "people",
        [{"id": "p-1", "roles": "buyer", "name": {"first": "Ann", "last": "Buyer"}}],
    )

    result = validate_section(draft, ContractSection.PEOPLE, ValidationMode.DRAFT)

    assert list(result.errors) == ["people.0.roles"]
    assert "role tags" in result.errors["people.0.roles"]


def test_allocation_key_errors_stay_on_the_field_path():
    draft = apply_patch(
        create_empty("loc-1"),
        "payments",
        [{"id": "pay-1", "amount": 10, "method": "cash", "date": "2026-01-05", "allocations": {"s-1": "lots"}}],
    )

    result = validate_section(draft, ContractSection.PAYMENTS, ValidationMode.DRAFT)

    assert list(result.errors) == ["payments.0.allocations.s-1"]
