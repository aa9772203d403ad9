"""Enums for the casedesk application.

Numeric values match the backend contract document exactly; string values are
the tags used inside editable drafts.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Iterable


class NeedType(IntEnum):
    """At-need (service now) vs pre-need (arranged in advance)."""

    AT_NEED = 1
    PRE_NEED = 2


class SaleType(IntEnum):
    """Kind of sale record attached to a contract."""

    CONTRACT = 0
    CONTRACT_ADJUSTMENT = 1
    MISC_CASH = 2


class SaleStatus(IntEnum):
    """Lifecycle state of the primary sale."""

    DRAFT = 0
    EXECUTED = 1
    FINALIZED = 2
    VOID = 3


class PaymentMethod(str, Enum):
    CASH = "cash"
    CHECK = "check"
    CREDIT_CARD = "credit_card"
    ACH = "ach"
    INSURANCE = "insurance"
    FINANCING = "financing"
    OTHER = "other"


class LocationType(IntEnum):
    """Type of the location the current user is working at."""

    FUNERAL = 0
    CEMETERY = 1
    CORPORATE = 2


class EntityState(IntEnum):
    """Change tracking state sent with batch save payloads."""

    UNMODIFIED = 0
    NEW = 1
    MODIFIED = 2
    DELETED = 3
    MOVED = 4


class PersonRole(str, Enum):
    """
    Role a person holds on a contract.

    A person may hold several roles at once. The backend stores them as bit
    flags; drafts store the tag values.
    """

    PRIMARY_BUYER = "primary_buyer"
    CO_BUYER = "co_buyer"
    PRIMARY_BENEFICIARY = "primary_beneficiary"
    ADDITIONAL_BENEFICIARY = "additional_beneficiary"

    @property
    def flag(self) -> int:
        return _ROLE_FLAGS[self]


_ROLE_FLAGS = {
    PersonRole.PRIMARY_BUYER: 1,
    PersonRole.CO_BUYER: 2,
    PersonRole.PRIMARY_BENEFICIARY: 4,
    PersonRole.ADDITIONAL_BENEFICIARY: 8,
}

PRIMARY_ROLES = frozenset({PersonRole.PRIMARY_BUYER, PersonRole.PRIMARY_BENEFICIARY})


def roles_from_flags(flags: int | None) -> frozenset[PersonRole]:
    """Decode the backend bit field into a role set. Unknown bits are dropped."""
    if not flags:
        return frozenset()
    return frozenset(role for role, bit in _ROLE_FLAGS.items() if int(flags) & bit)


def roles_to_flags(roles: Iterable[PersonRole | str]) -> int:
    flags = 0
    for role in roles:
        flags |= PersonRole(role).flag
    return flags


def role_tags(roles: Iterable[PersonRole | str]) -> list[str]:
    """Canonical draft representation of a role set: sorted, de-duplicated tag values."""
    return sorted({PersonRole(role).value for role in roles})


def parse_roles(value: object) -> frozenset[PersonRole]:
    """Read a role set from either draft tags or backend flags. Unknown tags are dropped."""
    if isinstance(value, bool) or value is None:
        return frozenset()
    if isinstance(value, int):
        return roles_from_flags(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        known = {role.value for role in PersonRole}
        return frozenset(PersonRole(tag) for tag in value if tag in known)
    return frozenset()


class ContractSection(str, Enum):
    """Named validation/editing regions of a contract."""

    GENERAL = "general"
    PEOPLE = "people"
    ITEMS = "items"
    PAYMENTS = "payments"
    REVIEW = "review"


class ValidationMode(Enum):
    """
    Strictness applied by section validators.

    DRAFT: work-in-progress saves, only location (and sale date where the
    location requires it) must be present.
    COMMIT: execute/finalize, every section must be complete.
    """

    DRAFT = "draft"
    COMMIT = "commit"


class EditorState(str, Enum):
    LOADING = "loading"
    IDLE = "ready.idle"
    EDITING = "ready.editing"
    SAVING = "ready.saving"
    SAVE_ERROR = "ready.error"
    ERROR = "error"

    @property
    def is_ready(self) -> bool:
        return self.value.startswith("ready.")


# Sentinel identifiers for records that have never been persisted.
NEW_CONTRACT_ID = "new"
TEMP_SALE_ID = "temp-sale-id"
TEMP_ID_PREFIX = "tmp-"
