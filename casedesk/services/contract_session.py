"""
Session driver: runs the load and two-phase save round trips and keeps the
sub-entity handlers in step with the editor's draft.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from casedesk.core.context import UserContext
from casedesk.core.enums import NEW_CONTRACT_ID, SaleStatus, ValidationMode
from casedesk.core.exceptions import CaseDeskError
from casedesk.core.logging import LogContext, build_log_event
from casedesk.drafts import contract_draft
from casedesk.orchestration.contract_editor import ContractEditor
from casedesk.services.base_handler import HandlerContext
from casedesk.services.catalog_service import CatalogService
from casedesk.services.contract_api import ContractApi
from casedesk.services.items_handler import ItemsHandler
from casedesk.services.payments_handler import PaymentsHandler
from casedesk.services.people_handler import PeopleHandler
from casedesk.services.save_model_builder import build_save_model
from casedesk.validation.sections import build_validation_error_message

logger = logging.getLogger(__name__)

MISSING_TOKEN_MESSAGE = "The server did not return a save token"
NOT_FOUND_MESSAGE = "Contract not found"


@dataclass(frozen=True)
class ContractFinancials:
    """Live totals for display. The backend recalculates the figures of record on commit."""

    subtotal: float = 0.0
    tax_total: float = 0.0
    discount_total: float = 0.0
    grand_total: float = 0.0
    amount_paid: float = 0.0
    balance_due: float = 0.0


class ContractSession:
    """One editing session over one contract. Not shared between editors."""

    def __init__(
        self,
        api: ContractApi,
        catalog: CatalogService | None = None,
        context: UserContext | None = None,
    ) -> None:
        self.api = api
        self.context = context or UserContext()
        self.editor = ContractEditor(self.context)
        self.server_errors: list[str] = []

        handler_context = HandlerContext(
            is_editable=lambda: self.editor.is_editable,
            get_contract_id=lambda: self.editor.contract_id,
            on_change=self._on_handler_change,
        )
        self.items = ItemsHandler(handler_context, catalog)
        self.payments = PaymentsHandler(handler_context)
        self.people = PeopleHandler(handler_context)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _log(self, level: int, event: str, **fields: Any) -> None:
        draft = self.editor.draft or {}
        context = LogContext(
            contract_id=self.editor.contract_id,
            location_id=draft.get("locationId") or self.context.current_location_id,
            state=self.editor.state.value,
        )
        logger.log(level, event, extra=build_log_event(event, context, **fields))

    def _sync_handlers(self) -> None:
        draft = self.editor.draft
        if draft is None:
            self.items.reset()
            self.payments.reset()
            self.people.reset()
            return
        self.items.apply_from_server(contract_draft.get_value(draft, ItemsHandler.path))
        self.payments.apply_from_server(contract_draft.get_value(draft, PaymentsHandler.path))
        self.people.apply_from_server(contract_draft.get_value(draft, PeopleHandler.path))

    def _on_handler_change(self, path: str, records: list[dict[str, Any]]) -> None:
        self.editor.field_patch(path, records)
        self._sync_handlers()

    @property
    def dirty(self) -> bool:
        return self.editor.dirty

    @property
    def last_error(self) -> str | None:
        return self.editor.last_error

    def validation_message(self) -> str | None:
        return build_validation_error_message(self.editor.validity, self.editor.errors_by_path)

    def send(self, event: object) -> bool:
        accepted = self.editor.send(event)
        self._sync_handlers()
        return accepted

    def field_patch(self, path: str, value: Any) -> bool:
        accepted = self.editor.field_patch(path, value)
        self._sync_handlers()
        return accepted

    def reset(self) -> bool:
        accepted = self.editor.reset()
        self.server_errors = []
        self._sync_handlers()
        return accepted

    # ------------------------------------------------------------------
    # Financials and availability
    # ------------------------------------------------------------------

    @property
    def financials(self) -> ContractFinancials:
        grand_total = self.items.grand_total
        amount_paid = self.payments.total
        return ContractFinancials(
            subtotal=self.items.subtotal,
            tax_total=self.items.tax_total,
            discount_total=self.items.discount_total,
            grand_total=grand_total,
            amount_paid=amount_paid,
            balance_due=round(grand_total - amount_paid, 2),
        )

    @property
    def has_required_fields(self) -> bool:
        return self.people.primary_buyer is not None and self.people.primary_beneficiary is not None

    @property
    def has_signature(self) -> bool:
        return bool(self.editor.status.date_signed)

    @property
    def can_save_draft_or_final(self) -> bool:
        status = self.editor.status
        return not status.is_executed and not status.is_voided

    @property
    def can_finalize(self) -> bool:
        return self.can_save_draft_or_final and self.editor.status.is_draft and self.has_required_fields

    @property
    def can_execute(self) -> bool:
        return (
            self.can_save_draft_or_final
            and self.editor.status.status is SaleStatus.FINALIZED
            and self.has_signature
        )

    @property
    def can_void(self) -> bool:
        status = self.editor.status
        return not status.is_voided and not status.is_draft

    @property
    def can_back_to_draft(self) -> bool:
        status = self.editor.status
        return status.status is SaleStatus.FINALIZED and not status.is_voided

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def open(self, contract_id: str | None = None, location_id: str | None = None) -> bool:
        """Load ``contract_id`` from the backend, or start a new contract when it is absent or ``"new"``."""
        target = contract_id or NEW_CONTRACT_ID
        self.server_errors = []
        if not self.editor.begin_load(target):
            return False

        if target == NEW_CONTRACT_ID:
            accepted = self.editor.create_new(location_id)
            self._sync_handlers()
            return accepted

        try:
            document = self.api.get(target)
        except CaseDeskError as exc:
            accepted = self.editor.load_failed(str(exc), contract_id=target)
            self._log(logging.WARNING, "session.load.failed", error=str(exc))
        else:
            if document is None:
                accepted = self.editor.load_failed(NOT_FOUND_MESSAGE, contract_id=target)
            else:
                accepted = self.editor.load_succeeded(document, contract_id=target)
                self._log(logging.INFO, "session.load.completed")
        self._sync_handlers()
        return accepted and self.editor.last_error is None

    # ------------------------------------------------------------------
    # Lifecycle status
    # ------------------------------------------------------------------

    def _apply_status_patches(self, patches: dict[str, Any]) -> bool:
        if not patches:
            return False
        for path, value in patches.items():
            if not self.editor.field_patch(path, value):
                return False
        self._sync_handlers()
        self._log(logging.INFO, "session.status.changed", status=patches.get("meta.status"))
        return True

    def finalize(self) -> bool:
        """Finalizing needs a primary buyer and a primary beneficiary."""
        if not self.has_required_fields:
            return False
        return self._apply_status_patches(self.editor.status.finalize())

    def execute(self) -> bool:
        return self._apply_status_patches(self.editor.status.execute())

    def void(self) -> bool:
        return self._apply_status_patches(self.editor.status.void())

    def back_to_draft(self) -> bool:
        return self._apply_status_patches(self.editor.status.back_to_draft())

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def _fail_save(self, message: str) -> bool:
        self.editor.save_failed(message)
        self._log(logging.WARNING, "session.save.failed", error=message)
        return False

    def _fail_unexpected(self, exc: Exception) -> bool:
        """Turn a fault from outside the error hierarchy into a failed save."""
        logger.exception(
            "session.save.crashed",
            extra={"event": "session.save.crashed", "contract_id": self.editor.contract_id},
        )
        return self._fail_save(str(exc) or type(exc).__name__)

    def save(self, mode: ValidationMode | None = None) -> bool:
        """
        Validate locally, then run validate and commit against the backend.

        Returns ``True`` once the committed document has re-seeded the draft.
        A locally invalid draft never reaches the network; backend failures
        leave the draft untouched and record the message as ``last_error``.
        """
        self.server_errors = []
        summary = self.editor.validate_all(mode)
        if summary is None:
            return False
        if not summary.valid:
            self._log(logging.INFO, "session.save.blocked", error_count=len(summary.errors_by_path))
            return False

        if not self.editor.save_request(mode):
            return False

        try:
            payload = build_save_model(self.editor.draft, id_source=self.api.next_ids)
            response = self.api.validate_draft(payload)
        except CaseDeskError as exc:
            return self._fail_save(str(exc))
        except Exception as exc:
            return self._fail_unexpected(exc)

        if response.errors:
            self.server_errors = list(response.errors)
            return self._fail_save("; ".join(response.errors))
        if not response.save_token:
            return self._fail_save(MISSING_TOKEN_MESSAGE)

        try:
            document = self.api.save_draft(response.save_token)
        except CaseDeskError as exc:
            return self._fail_save(str(exc))
        except Exception as exc:
            return self._fail_unexpected(exc)

        accepted = self.editor.save_succeeded(document)
        self._sync_handlers()
        if self.editor.last_error is not None:
            return False
        self._log(logging.INFO, "session.save.completed")
        return accepted
