"""
People handler.

People live in one ``people`` list; the logical slots (primary buyer, primary
beneficiary, co-buyers, additional beneficiaries, unclassified) are views over
that list selected by role. Primary roles are structural: they move only
through the slot operations, never through :meth:`PeopleHandler.change_role`.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from casedesk.core.enums import PRIMARY_ROLES, PersonRole, parse_roles, role_tags
from casedesk.services.base_handler import BaseHandler, Record
from casedesk.utils.ids import is_new_entity, new_temp_id

ROLE_LABELS = {
    PersonRole.PRIMARY_BUYER: "Primary Buyer",
    PersonRole.CO_BUYER: "Co-Buyer",
    PersonRole.PRIMARY_BENEFICIARY: "Primary Beneficiary",
    PersonRole.ADDITIONAL_BENEFICIARY: "Additional Beneficiary",
}

# Display priority when a person holds several roles.
_ROLE_PRIORITY = (
    PersonRole.PRIMARY_BUYER,
    PersonRole.CO_BUYER,
    PersonRole.PRIMARY_BENEFICIARY,
    PersonRole.ADDITIONAL_BENEFICIARY,
)


def has_role(person: Mapping[str, Any] | None, role: PersonRole | str) -> bool:
    if not person:
        return False
    return PersonRole(role) in parse_roles(person.get("roles"))


def full_name(person: Mapping[str, Any] | None) -> str:
    name = (person or {}).get("name") or {}
    parts = (name.get("first"), name.get("middle"), name.get("last"))
    return " ".join(part.strip() for part in parts if part and part.strip())


def display_type(person: Mapping[str, Any] | None) -> str:
    roles = parse_roles((person or {}).get("roles"))
    for role in _ROLE_PRIORITY:
        if role in roles:
            return ROLE_LABELS[role]
    return "Person"


def _empty_name() -> Record:
    return {
        "id": new_temp_id(),
        "first": "",
        "middle": None,
        "last": "",
        "prefix": None,
        "suffix": None,
        "birthDate": None,
        "deathDate": None,
        "deceased": False,
        "phones": [],
        "addresses": [],
        "emailAddresses": [],
    }


def new_person(roles: list[PersonRole | str], name: Mapping[str, Any] | None = None) -> Record:
    merged_name = _empty_name()
    merged_name.update(copy.deepcopy(dict(name or {})))
    return {"id": new_temp_id(), "roles": role_tags(roles), "name": merged_name}


class PeopleHandler(BaseHandler):
    path = "people"

    # Views

    @property
    def people(self) -> list[Record]:
        return self.get_all()

    def _holder_index(self, role: PersonRole) -> int:
        for index, person in enumerate(self._records):
            if has_role(person, role):
                return index
        return -1

    def _holder(self, role: PersonRole) -> Record | None:
        index = self._holder_index(role)
        return None if index == -1 else copy.deepcopy(self._records[index])

    def _with_role(self, role: PersonRole) -> list[Record]:
        return [copy.deepcopy(person) for person in self._records if has_role(person, role)]

    @property
    def primary_buyer(self) -> Record | None:
        return self._holder(PersonRole.PRIMARY_BUYER)

    @property
    def primary_beneficiary(self) -> Record | None:
        return self._holder(PersonRole.PRIMARY_BENEFICIARY)

    @property
    def co_buyers(self) -> list[Record]:
        return self._with_role(PersonRole.CO_BUYER)

    @property
    def additional_beneficiaries(self) -> list[Record]:
        return self._with_role(PersonRole.ADDITIONAL_BENEFICIARY)

    @property
    def unclassified(self) -> list[Record]:
        return [copy.deepcopy(person) for person in self._records if not parse_roles(person.get("roles"))]

    def get_person(self, person_id: str) -> Record | None:
        return self.find_by_id(person_id)

    def is_person_new(self, person_id: str) -> bool:
        return is_new_entity(person_id)

    # Shared mutations

    def _merge_name(self, index: int, name: Mapping[str, Any]) -> bool:
        records = list(self._records)
        person = records[index]
        merged = {**(person.get("name") or {}), **copy.deepcopy(dict(name))}
        records[index] = {**person, "name": merged}
        return self._commit(records)

    def add_person(self, roles: list[PersonRole | str], name: Mapping[str, Any] | None = None) -> Record | None:
        known = parse_roles(list(roles))
        if known & PRIMARY_ROLES:
            return None
        person = new_person(list(known), name)
        if not self.add_record(person):
            return None
        return copy.deepcopy(person)

    def update_person(self, person_id: str, name: Mapping[str, Any]) -> bool:
        if not self.guard_edit():
            return False
        index = self.find_index(person_id)
        if index == -1:
            return False
        return self._merge_name(index, name)

    def remove_person(self, person_id: str) -> bool:
        return self.remove_by_id(person_id)

    # Singular slots

    def _update_slot(self, role: PersonRole, name: Mapping[str, Any]) -> bool:
        if not self.guard_edit():
            return False
        index = self._holder_index(role)
        if index == -1:
            return self._commit([*self._records, new_person([role], name)])
        return self._merge_name(index, name)

    def _clear_slot(self, role: PersonRole) -> bool:
        """Take the role away; a person left without any role is removed."""
        if not self.guard_edit():
            return False
        index = self._holder_index(role)
        if index == -1:
            return False
        records = list(self._records)
        person = records[index]
        remaining = parse_roles(person.get("roles")) - {role}
        if remaining:
            records[index] = {**person, "roles": role_tags(remaining)}
        else:
            del records[index]
        return self._commit(records)

    def update_primary_buyer(self, name: Mapping[str, Any]) -> bool:
        return self._update_slot(PersonRole.PRIMARY_BUYER, name)

    def clear_primary_buyer(self) -> bool:
        return self._clear_slot(PersonRole.PRIMARY_BUYER)

    def update_primary_beneficiary(self, name: Mapping[str, Any]) -> bool:
        return self._update_slot(PersonRole.PRIMARY_BENEFICIARY, name)

    def clear_primary_beneficiary(self) -> bool:
        return self._clear_slot(PersonRole.PRIMARY_BENEFICIARY)

    # Plural slots

    def _update_in_slot(self, role: PersonRole, person_id: str, name: Mapping[str, Any]) -> bool:
        if not self.guard_edit():
            return False
        index = self.find_index(person_id)
        if index == -1 or not has_role(self._records[index], role):
            return False
        return self._merge_name(index, name)

    def _remove_from_slot(self, role: PersonRole, person_id: str) -> bool:
        index = self.find_index(person_id)
        if index == -1 or not has_role(self._records[index], role):
            return False
        return self.remove_by_id(person_id)

    def add_co_buyer(self, name: Mapping[str, Any] | None = None) -> Record | None:
        return self.add_person([PersonRole.CO_BUYER], name)

    def remove_co_buyer(self, person_id: str) -> bool:
        return self._remove_from_slot(PersonRole.CO_BUYER, person_id)

    def update_co_buyer(self, person_id: str, name: Mapping[str, Any]) -> bool:
        return self._update_in_slot(PersonRole.CO_BUYER, person_id, name)

    def add_additional_beneficiary(self, name: Mapping[str, Any] | None = None) -> Record | None:
        return self.add_person([PersonRole.ADDITIONAL_BENEFICIARY], name)

    def remove_additional_beneficiary(self, person_id: str) -> bool:
        return self._remove_from_slot(PersonRole.ADDITIONAL_BENEFICIARY, person_id)

    def update_additional_beneficiary(self, person_id: str, name: Mapping[str, Any]) -> bool:
        return self._update_in_slot(PersonRole.ADDITIONAL_BENEFICIARY, person_id, name)

    # Roles

    def has_role(self, person_id: str, role: PersonRole | str) -> bool:
        index = self.find_index(person_id)
        return index != -1 and has_role(self._records[index], role)

    def change_role(self, person_id: str, new_role: PersonRole | str) -> bool:
        """Move a person between the plural slots. Primary role holders and primary targets are refused."""
        try:
            new_role = PersonRole(new_role)
        except ValueError:
            return False
        if new_role in PRIMARY_ROLES or not self.guard_edit():
            return False
        index = self.find_index(person_id)
        if index == -1:
            return False
        person = self._records[index]
        if parse_roles(person.get("roles")) & PRIMARY_ROLES:
            return False
        records = list(self._records)
        records[index] = {**person, "roles": role_tags([new_role])}
        return self._commit(records)

    def copy_buyer_to_beneficiary(self) -> bool:
        """Copy the buyer's name and contact data onto the beneficiary, keeping the beneficiary's ids."""
        if not self.guard_edit():
            return False
        buyer_index = self._holder_index(PersonRole.PRIMARY_BUYER)
        if buyer_index == -1:
            return False
        buyer_name = copy.deepcopy(self._records[buyer_index].get("name") or {})

        records = list(self._records)
        beneficiary_index = self._holder_index(PersonRole.PRIMARY_BENEFICIARY)
        if beneficiary_index == -1 or beneficiary_index == buyer_index:
            buyer_name["id"] = new_temp_id()
            records.append(new_person([PersonRole.PRIMARY_BENEFICIARY], buyer_name))
            if beneficiary_index == buyer_index:
                buyer = records[buyer_index]
                remaining = parse_roles(buyer.get("roles")) - {PersonRole.PRIMARY_BENEFICIARY}
                records[buyer_index] = {**buyer, "roles": role_tags(remaining)}
            return self._commit(records)

        beneficiary = records[beneficiary_index]
        buyer_name["id"] = (beneficiary.get("name") or {}).get("id")
        records[beneficiary_index] = {**beneficiary, "name": buyer_name}
        return self._commit(records)
