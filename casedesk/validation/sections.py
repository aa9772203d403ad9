"""
Section validation for contract drafts.

Every result is keyed by the same dotted paths the patch engine uses, so a
field can look up its own error by exact path. The ``review`` section is the
union of the four concrete sections and is the check run before a save.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from casedesk.core.config import get_config
from casedesk.core.context import UserContext
from casedesk.core.enums import ContractSection, ValidationMode
from casedesk.utils.paths import path_has_prefix
from casedesk.validation import rules

logger = logging.getLogger(__name__)

CONCRETE_SECTIONS = (
    ContractSection.GENERAL,
    ContractSection.PEOPLE,
    ContractSection.ITEMS,
    ContractSection.PAYMENTS,
)

# Path prefixes owned by each concrete section, matched on token boundaries.
SECTION_PREFIXES: dict[ContractSection, tuple[str, ...]] = {
    ContractSection.GENERAL: (
        "locationId",
        "needType",
        "prePrintedContractNumber",
        "contractNumber",
        "sale.saleDate",
        "meta",
    ),
    ContractSection.PEOPLE: ("people",),
    ContractSection.ITEMS: ("sale.items",),
    ContractSection.PAYMENTS: ("payments",),
}

_SECTION_LABELS = {
    ContractSection.GENERAL: "General",
    ContractSection.PEOPLE: "People",
    ContractSection.ITEMS: "Items",
    ContractSection.PAYMENTS: "Payments",
}

MISSING_DRAFT_PATH = "contract"
UNKNOWN_SECTION_PATH = "section"


def parse_section(value: object) -> ContractSection | None:
    """Section for a name or enum member; unknown names give ``None``."""
    try:
        return ContractSection(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class SectionResult:
    valid: bool
    errors: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidationSummary:
    """Per-section validity plus the merged path errors of every section."""

    validity: dict[ContractSection, bool]
    errors_by_path: dict[str, str]

    @property
    def valid(self) -> bool:
        return all(self.validity.values())


def _section_errors(
    draft: Mapping[str, Any],
    section: ContractSection,
    mode: ValidationMode,
    context: UserContext,
) -> dict[str, str]:
    today = date.today()
    if section is ContractSection.GENERAL:
        return rules.general_errors(draft, mode, context, get_config().SALE_DATE_MIN_YEAR, today)
    if section is ContractSection.PEOPLE:
        return rules.people_errors(draft, mode, today)
    if section is ContractSection.ITEMS:
        return rules.items_errors(draft, mode)
    if section is ContractSection.PAYMENTS:
        return rules.payments_errors(draft, mode)

    merged: dict[str, str] = {}
    for concrete in CONCRETE_SECTIONS:
        for path, message in _section_errors(draft, concrete, mode, context).items():
            rules.add_error(merged, path, message)
    return merged


def validate_section(
    draft: Any,
    section: ContractSection | str,
    mode: ValidationMode,
    context: UserContext | None = None,
) -> SectionResult:
    """Validate one section of ``draft``. Never raises; problems come back as path errors."""
    requested = section
    section = parse_section(requested)
    if section is None:
        return SectionResult(valid=False, errors={UNKNOWN_SECTION_PATH: f"Unknown section: {requested}"})
    if not isinstance(draft, Mapping):
        return SectionResult(valid=False, errors={MISSING_DRAFT_PATH: "Contract data is not available"})

    errors = _section_errors(draft, section, mode, context or UserContext())
    if errors:
        logger.debug(
            "validation.section.failed",
            extra={"event": "validation.section.failed", "section": section.value},
        )
    return SectionResult(valid=not errors, errors=errors)


def validate_all_sections(
    draft: Any,
    mode: ValidationMode,
    context: UserContext | None = None,
) -> ValidationSummary:
    validity: dict[ContractSection, bool] = {}
    errors_by_path: dict[str, str] = {}

    for section in CONCRETE_SECTIONS:
        result = validate_section(draft, section, mode, context)
        validity[section] = result.valid
        for path, message in result.errors.items():
            rules.add_error(errors_by_path, path, message)

    validity[ContractSection.REVIEW] = not errors_by_path
    return ValidationSummary(validity=validity, errors_by_path=errors_by_path)


def section_for_path(path: str | None) -> ContractSection | None:
    """Owning section of a draft path, or ``None`` when no section claims it."""
    if not path:
        return None
    for section, prefixes in SECTION_PREFIXES.items():
        if any(path_has_prefix(path, prefix) for prefix in prefixes):
            return section
    return None


def clear_section_errors(errors: Mapping[str, str], section: ContractSection | str) -> dict[str, str]:
    """Return ``errors`` without the keys owned by ``section``. Clearing ``review`` clears everything."""
    section = parse_section(section)
    if section is None:
        return dict(errors)
    if section is ContractSection.REVIEW:
        return {}
    prefixes = SECTION_PREFIXES[section]
    return {
        path: message
        for path, message in errors.items()
        if not any(path_has_prefix(path, prefix) for prefix in prefixes)
    }


def build_validation_error_message(
    validity: Mapping[ContractSection | str, bool],
    errors_by_path: Mapping[str, str],
) -> str | None:
    """
    Summarize failing sections for display next to the save button.

    Returns ``None`` when every section is valid.
    """
    failing = [
        _SECTION_LABELS[section]
        for section in CONCRETE_SECTIONS
        if validity.get(section, True) is False
    ]
    if not failing and not errors_by_path:
        return None

    count = len(errors_by_path)
    noun = "issue" if count == 1 else "issues"
    if not failing:
        return f"Please fix {count} {noun} before saving."
    return f"Please fix {count} {noun} in: {', '.join(failing)}."
