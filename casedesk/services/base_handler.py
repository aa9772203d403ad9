"""Shared base for handlers that manage one list of records inside a draft."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

Record = dict[str, Any]


def _always_editable() -> bool:
    return True


def _no_contract() -> str | None:
    return None


@dataclass
class HandlerContext:
    """What a handler needs from the owning session."""

    is_editable: Callable[[], bool] = _always_editable
    get_contract_id: Callable[[], str | None] = _no_contract
    on_change: Callable[[str, list[Record]], Any] | None = None

    @property
    def contract_id(self) -> str | None:
        return self.get_contract_id()


class BaseHandler:
    """
    Holds a private deep copy of one record list and publishes every change.

    Mutations build a new list and hand it to ``context.on_change`` together
    with the handler's draft path; the session turns that into a field patch.
    Every mutation is refused (returns ``False``/``None``) while the context is
    not editable.
    """

    path = ""

    def __init__(self, context: HandlerContext | None = None) -> None:
        self.context = context or HandlerContext()
        self._records: list[Record] = []

    def guard_edit(self) -> bool:
        editable = self.context.is_editable()
        if not editable:
            logger.debug(
                "handler.edit.refused",
                extra={"event": "handler.edit.refused", "path": self.path, "contract_id": self.context.contract_id},
            )
        return editable

    def apply_from_server(self, records: Iterable[Mapping[str, Any]] | None) -> None:
        self._records = [copy.deepcopy(dict(record)) for record in records or [] if isinstance(record, Mapping)]

    def reset(self) -> None:
        self._records = []

    def get_all(self) -> list[Record]:
        return copy.deepcopy(self._records)

    def find_index(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.get("id") == record_id:
                return index
        return -1

    def find_by_id(self, record_id: str) -> Record | None:
        index = self.find_index(record_id)
        return None if index == -1 else copy.deepcopy(self._records[index])

    def _commit(self, records: list[Record]) -> bool:
        self._records = records
        if self.context.on_change is not None:
            self.context.on_change(self.path, copy.deepcopy(records))
        return True

    def add_record(self, record: Mapping[str, Any]) -> bool:
        if not self.guard_edit():
            return False
        return self._commit([*self._records, copy.deepcopy(dict(record))])

    def remove_by_id(self, record_id: str) -> bool:
        if not self.guard_edit():
            return False
        index = self.find_index(record_id)
        if index == -1:
            return False
        return self._commit(self._records[:index] + self._records[index + 1 :])

    def apply_update(self, record: Mapping[str, Any]) -> bool:
        """Replace the record with the same id, stamping ``dateLastModified`` when the record carries one."""
        if not self.guard_edit():
            return False
        index = self.find_index(record.get("id"))
        if index == -1:
            return False
        updated = copy.deepcopy(dict(record))
        if "dateLastModified" in updated:
            updated["dateLastModified"] = datetime.now(timezone.utc).isoformat()
        records = list(self._records)
        records[index] = updated
        return self._commit(records)

    def update_fields(self, record_id: str, **fields: Any) -> bool:
        if not self.guard_edit():
            return False
        index = self.find_index(record_id)
        if index == -1:
            return False
        records = list(self._records)
        records[index] = {**records[index], **fields}
        return self._commit(records)
