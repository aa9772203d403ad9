"""Shape schemas for contract documents and draft sections.

These models only check that values have the right *types*; business rules
(required fields, positive amounts, role composition) live in
``casedesk.validation`` because they depend on the validation mode.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from casedesk.core.enums import NeedType, PaymentMethod, SaleStatus, SaleType


class WireModel(BaseModel):
    """Base for backend-shaped models: camelCase on the wire, unknown keys kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class NamePhone(WireModel):
    id: str | None = None
    number: str | None = None
    type: int | None = None
    preferred: bool = False


class NameAddress(WireModel):
    id: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    county: str | None = None
    country: str | None = None


class NameEmail(WireModel):
    id: str | None = None
    email: str | None = None
    preferred: bool = False


class PersonName(WireModel):
    id: str | None = None
    first: str | None = None
    middle: str | None = None
    last: str | None = None
    prefix: str | None = None
    suffix: str | None = None
    birth_date: str | None = None
    death_date: str | None = None
    deceased: bool = False
    phones: list[NamePhone] = Field(default_factory=list)
    addresses: list[NameAddress] = Field(default_factory=list)
    email_addresses: list[NameEmail] = Field(default_factory=list)


class ContractPersonShape(WireModel):
    id: str | None = None
    roles: Any = Field(default_factory=list)
    name: PersonName = Field(default_factory=PersonName)

    @field_validator("roles")
    @classmethod
    def _roles_are_tags_or_flags(cls, value: Any) -> Any:
        # Drafts carry a tag list, backend documents a bit field.
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, list) and all(isinstance(tag, str) for tag in value):
            return value
        raise ValueError("Roles must be a list of role tags or a role flag value")


class SalesTaxShape(WireModel):
    id: str | None = None
    tax_rate: float = Field(default=0, ge=0)
    tax_amount: float = Field(default=0, ge=0)


class DiscountShape(WireModel):
    id: str | None = None
    description: str | None = None
    amount: float = Field(default=0, ge=0)


class SaleItemShape(WireModel):
    id: str | None = None
    item_id: str | None = None
    description: str | None = None
    need_type: NeedType | None = None
    quantity: float = 1
    unit_price: float = 0
    cost: float = 0
    book_price: float = 0
    book_cost: float = 0
    sales_tax_enabled: bool = True
    is_cancelled: bool = False
    ordinal: int = 0
    sales_tax: list[SalesTaxShape] = Field(default_factory=list)
    discounts: list[DiscountShape] = Field(default_factory=list)


class PaymentShape(WireModel):
    id: str | None = None
    date: str | None = None
    method: str | None = None
    amount: float = 0
    reference: str | None = None
    notes: str | None = None
    allocations: dict[str, float] | None = None


class GeneralShape(WireModel):
    location_id: str | None = None
    need_type: int | None = None
    pre_printed_contract_number: str | None = None


class PeopleSectionShape(WireModel):
    people: list[ContractPersonShape] = Field(default_factory=list)


class ItemsSectionShape(WireModel):
    items: list[SaleItemShape] = Field(default_factory=list)


class PaymentsSectionShape(WireModel):
    payments: list[PaymentShape] = Field(default_factory=list)


class SaleDocument(WireModel):
    id: str | None = None
    sale_date: str | None = None
    sale_type: SaleType = SaleType.CONTRACT
    sale_status: SaleStatus = SaleStatus.DRAFT
    items: list[SaleItemShape] = Field(default_factory=list)


class ContractDocument(WireModel):
    """A persisted contract as returned by the backend."""

    id: str
    contract_number: str | None = None
    location_id: str | None = None
    need_type: NeedType = NeedType.AT_NEED
    is_cancelled: bool = False
    sales: list[SaleDocument] = Field(default_factory=list)
    people: list[ContractPersonShape] = Field(default_factory=list)
    payments: list[PaymentShape] = Field(default_factory=list)


PAYMENT_METHODS = frozenset(method.value for method in PaymentMethod)
