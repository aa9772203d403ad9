"""Section validators for contract drafts."""

from casedesk.validation.sections import (
    SectionResult,
    ValidationSummary,
    build_validation_error_message,
    clear_section_errors,
    parse_section,
    section_for_path,
    validate_all_sections,
    validate_section,
)

__all__ = [
    "SectionResult",
    "ValidationSummary",
    "build_validation_error_message",
    "clear_section_errors",
    "parse_section",
    "section_for_path",
    "validate_all_sections",
    "validate_section",
]
