"""
Contract lifecycle status derived from a draft's ``meta`` block.

Status actions do not mutate anything. They return the ``meta`` field patches
to apply, or an empty mapping when the action is not allowed from the current
status.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from casedesk.core.enums import SaleStatus, ValidationMode
from casedesk.orchestration.state_machine import contract_status_machine

logger = logging.getLogger(__name__)

_status_machine = contract_status_machine()


@dataclass(frozen=True)
class ContractStatus:
    status: SaleStatus = SaleStatus.DRAFT
    date_signed: str | None = None
    date_executed: str | None = None
    is_cancelled: bool = False

    @classmethod
    def from_draft(cls, draft: Mapping[str, Any] | None) -> "ContractStatus":
        meta = (draft or {}).get("meta") or {}
        try:
            status = SaleStatus(meta.get("status", SaleStatus.DRAFT))
        except ValueError:
            status = SaleStatus.DRAFT
        return cls(
            status=status,
            date_signed=meta.get("dateSigned"),
            date_executed=meta.get("dateExecuted"),
            is_cancelled=bool(meta.get("isCancelled", False)),
        )

    @property
    def is_executed(self) -> bool:
        return self.status is SaleStatus.EXECUTED

    @property
    def is_voided(self) -> bool:
        return self.status is SaleStatus.VOID or self.is_cancelled

    @property
    def is_finalized(self) -> bool:
        """Finalized or beyond; executed contracts count as finalized."""
        return self.status in {SaleStatus.FINALIZED, SaleStatus.EXECUTED}

    @property
    def is_draft(self) -> bool:
        return self.status is SaleStatus.DRAFT

    @property
    def is_editable(self) -> bool:
        return self.is_draft and not self.is_voided

    @property
    def validation_mode(self) -> ValidationMode:
        return ValidationMode.DRAFT if self.is_draft else ValidationMode.COMMIT

    def _move(self, target: SaleStatus) -> bool:
        if self.is_voided:
            return False
        allowed = _status_machine.can_transition(self.status.name, target.name)
        if not allowed:
            logger.debug(
                "contract.status.transition_refused",
                extra={"event": "contract.status.transition_refused", "state": self.status.name},
            )
        return allowed

    def finalize(self) -> dict[str, Any]:
        if not self._move(SaleStatus.FINALIZED):
            return {}
        return {"meta.status": int(SaleStatus.FINALIZED)}

    def execute(self) -> dict[str, Any]:
        """Executing requires a signed date and stamps the execution time."""
        if not self.date_signed or not self._move(SaleStatus.EXECUTED):
            return {}
        return {
            "meta.status": int(SaleStatus.EXECUTED),
            "meta.dateExecuted": datetime.now(timezone.utc).isoformat(),
        }

    def void(self) -> dict[str, Any]:
        if not self._move(SaleStatus.VOID):
            return {}
        return {"meta.status": int(SaleStatus.VOID)}

    def back_to_draft(self) -> dict[str, Any]:
        if not self._move(SaleStatus.DRAFT):
            return {}
        return {"meta.status": int(SaleStatus.DRAFT)}
