"""Identifier generation helpers."""

from __future__ import annotations

import uuid

from casedesk.core.enums import NEW_CONTRACT_ID, TEMP_ID_PREFIX, TEMP_SALE_ID


def new_temp_id() -> str:
    """Create a client-side identifier for a record the backend has not seen yet."""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def new_id() -> str:
    """Create a UUID4-based identifier."""
    return str(uuid.uuid4())


def is_new_entity(entity_id: object) -> bool:
    """True when the id does not refer to a persisted backend record."""
    if entity_id is None:
        return True
    value = str(entity_id).strip()
    if value in {"", "0", NEW_CONTRACT_ID, TEMP_SALE_ID}:
        return True
    return value.startswith(TEMP_ID_PREFIX)
