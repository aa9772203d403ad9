"""
Editor state machine for a single contract editing session.

All changes arrive as events through :meth:`ContractEditor.send`, which never
raises: an event that is not valid in the current state is ignored and
``send`` returns ``False``. Network work (load, validate, commit) happens
outside the machine and reports back through the ``*Succeeded``/``*Failed``
events.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import ValidationError

from casedesk.core.context import UserContext
from casedesk.core.enums import ContractSection, EditorState, ValidationMode
from casedesk.drafts import contract_draft
from casedesk.drafts.contract_draft import ContractDraft
from casedesk.orchestration.contract_status import ContractStatus
from casedesk.orchestration.state_machine import editor_state_machine, is_ready_state
from casedesk.schemas.contracts import ContractDocument
from casedesk.utils.paths import path_has_prefix
from casedesk.validation import rules
from casedesk.validation.sections import (
    ValidationSummary,
    clear_section_errors,
    parse_section,
    section_for_path,
    validate_all_sections,
    validate_section,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BeginLoad:
    contract_id: str


@dataclass(frozen=True)
class LoadSucceeded:
    document: Mapping[str, Any]
    contract_id: str | None = None


@dataclass(frozen=True)
class LoadFailed:
    message: str
    contract_id: str | None = None


@dataclass(frozen=True)
class CreateNew:
    location_id: str | None = None


@dataclass(frozen=True)
class FieldPatch:
    path: str
    value: Any


@dataclass(frozen=True)
class Touch:
    path: str


@dataclass(frozen=True)
class ValidateSection:
    section: ContractSection


@dataclass(frozen=True)
class ValidateAll:
    mode: ValidationMode | None = None


@dataclass(frozen=True)
class SaveRequest:
    mode: ValidationMode | None = None


@dataclass(frozen=True)
class SaveSucceeded:
    document: Mapping[str, Any]


@dataclass(frozen=True)
class SaveFailed:
    message: str


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class SetTab:
    section: ContractSection


_EDITABLE_STATES = {EditorState.IDLE, EditorState.EDITING, EditorState.SAVE_ERROR}

DATA_UNAVAILABLE_MESSAGE = "Contract data is not available"


def _document_problem(document: object) -> str | None:
    if not isinstance(document, Mapping):
        return DATA_UNAVAILABLE_MESSAGE
    try:
        ContractDocument.model_validate(dict(document))
    except ValidationError as exc:
        return f"Contract data is malformed: {exc.error_count()} problem(s)"
    return None


class ContractEditor:
    """Owns the draft, its snapshot and the validation state of one session."""

    def __init__(self, context: UserContext | None = None) -> None:
        self.context = context or UserContext()
        self.state = EditorState.LOADING
        self.draft: ContractDraft | None = None
        self.document: dict[str, Any] | None = None
        self.errors_by_path: dict[str, str] = {}
        self.validity: dict[ContractSection, bool] = {}
        self.touched: set[str] = set()
        self.dirty = False
        self.last_error: str | None = None
        self.last_summary: ValidationSummary | None = None
        self.active_tab = ContractSection.GENERAL
        self.pending_contract_id: str | None = None
        self._snapshot: ContractDraft | None = None
        self._machine = editor_state_machine()
        self._handlers: dict[type, Callable[[Any], bool]] = {
            BeginLoad: self._on_begin_load,
            LoadSucceeded: self._on_load_succeeded,
            LoadFailed: self._on_load_failed,
            CreateNew: self._on_create_new,
            FieldPatch: self._on_field_patch,
            Touch: self._on_touch,
            ValidateSection: self._on_validate_section,
            ValidateAll: self._on_validate_all,
            SaveRequest: self._on_save_request,
            SaveSucceeded: self._on_save_succeeded,
            SaveFailed: self._on_save_failed,
            Reset: self._on_reset,
            SetTab: self._on_set_tab,
        }

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> ContractDraft | None:
        return self._snapshot

    @property
    def is_ready(self) -> bool:
        return is_ready_state(self.state)

    @property
    def status(self) -> ContractStatus:
        return ContractStatus.from_draft(self.draft)

    @property
    def validation_mode(self) -> ValidationMode:
        return self.status.validation_mode

    @property
    def is_editable(self) -> bool:
        """Handlers may mutate only a ready, non-saving session on a draft-status contract."""
        return self.state in _EDITABLE_STATES and self.draft is not None and self.status.is_editable

    @property
    def contract_id(self) -> str | None:
        return None if self.draft is None else self.draft.get("id")

    @property
    def is_valid(self) -> bool:
        return not self.errors_by_path and all(self.validity.values())

    def errors_for(self, path: str) -> list[str]:
        message = self.errors_by_path.get(path)
        return [message] if message else []

    def visible_errors(self) -> dict[str, str]:
        """Errors for touched paths only."""
        return {path: message for path, message in self.errors_by_path.items() if path in self.touched}

    def get_value(self, path: str) -> Any:
        if self.draft is None:
            return None
        return contract_draft.get_value(self.draft, path)

    # ------------------------------------------------------------------
    # Event entry point
    # ------------------------------------------------------------------

    def send(self, event: object) -> bool:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.debug("editor.event.unknown", extra={"event": "editor.event.unknown", "state": self.state.value})
            return False
        accepted = handler(event)
        if not accepted:
            logger.debug(
                "editor.event.ignored",
                extra={
                    "event": "editor.event.ignored",
                    "state": self.state.value,
                    "contract_id": self.contract_id,
                },
            )
        return accepted

    def _enter(self, target: EditorState) -> bool:
        if not self._machine.can_transition(self.state, target):
            return False
        if target is not self.state:
            logger.debug(
                "editor.state.changed",
                extra={"event": "editor.state.changed", "state": target.value, "contract_id": self.contract_id},
            )
        self.state = target
        return True

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def _seed(self, draft: ContractDraft, document: Mapping[str, Any] | None) -> None:
        self.draft = draft
        self._snapshot = contract_draft.snapshot(draft)
        self.document = copy.deepcopy(dict(document)) if document is not None else None
        self._clear_validation()
        self.dirty = False
        self.last_error = None
        self.pending_contract_id = None

    def _clear_validation(self) -> None:
        self.errors_by_path = {}
        self.validity = {}
        self.touched = set()
        self.last_summary = None

    def _is_stale(self, contract_id: str | None) -> bool:
        return contract_id is not None and contract_id != self.pending_contract_id

    def _on_begin_load(self, event: BeginLoad) -> bool:
        if not self._enter(EditorState.LOADING):
            return False
        self.pending_contract_id = event.contract_id
        self.last_error = None
        return True

    def _on_load_succeeded(self, event: LoadSucceeded) -> bool:
        if self.state is not EditorState.LOADING or self._is_stale(event.contract_id):
            return False
        problem = _document_problem(event.document)
        if problem is not None:
            return self._on_load_failed(LoadFailed(problem, event.contract_id))
        self._seed(contract_draft.from_persisted(event.document), event.document)
        return self._enter(EditorState.IDLE)

    def _on_load_failed(self, event: LoadFailed) -> bool:
        if self.state is not EditorState.LOADING or self._is_stale(event.contract_id):
            return False
        self.pending_contract_id = None
        self.last_error = event.message
        logger.warning(
            "editor.load.failed",
            extra={"event": "editor.load.failed", "contract_id": event.contract_id, "error": event.message},
        )
        return self._enter(EditorState.ERROR)

    def _on_create_new(self, event: CreateNew) -> bool:
        if self.state not in {EditorState.LOADING, EditorState.ERROR}:
            return False
        location_id = event.location_id if event.location_id is not None else self.context.current_location_id
        self._seed(contract_draft.create_empty(location_id), None)
        return self._enter(EditorState.IDLE)

    # ------------------------------------------------------------------
    # Editing and validation
    # ------------------------------------------------------------------

    def _is_touched(self, path: str) -> bool:
        return any(path_has_prefix(path, seen) or path_has_prefix(seen, path) for seen in self.touched)

    def _on_field_patch(self, event: FieldPatch) -> bool:
        if self.state not in _EDITABLE_STATES or self.draft is None:
            return False
        updated = contract_draft.apply_patch(self.draft, event.path, event.value)
        if updated is self.draft:
            return False

        self.draft = updated
        if self._is_touched(event.path):
            self._revalidate_for(event.path)
        self.dirty = not contract_draft.drafts_equal(self.draft, self._snapshot)
        return self._enter(EditorState.EDITING)

    def _revalidate_for(self, path: str) -> None:
        """Re-validate the owning section plus the review check; unowned paths revalidate everything."""
        mode = self.validation_mode
        section = section_for_path(path)
        if section is None:
            summary = validate_all_sections(self.draft, mode, self.context)
            self.errors_by_path = dict(summary.errors_by_path)
            self.validity = dict(summary.validity)
            return

        result = validate_section(self.draft, section, mode, self.context)
        review = validate_section(self.draft, ContractSection.REVIEW, mode, self.context)
        errors = clear_section_errors(self.errors_by_path, section)
        for error_path, message in result.errors.items():
            rules.add_error(errors, error_path, message)
        for error_path, message in review.errors.items():
            if section_for_path(error_path) is section:
                rules.add_error(errors, error_path, message)
        self.errors_by_path = errors
        self.validity[section] = result.valid
        self.validity[ContractSection.REVIEW] = review.valid

    def _on_touch(self, event: Touch) -> bool:
        if not self.is_ready or not event.path:
            return False
        self.touched.add(event.path)
        return True

    def _apply_section(self, section: ContractSection) -> None:
        result = validate_section(self.draft, section, self.validation_mode, self.context)
        errors = clear_section_errors(self.errors_by_path, section)
        for error_path, message in result.errors.items():
            rules.add_error(errors, error_path, message)
        self.errors_by_path = errors
        self.validity[section] = result.valid

    def _on_validate_section(self, event: ValidateSection) -> bool:
        if not self.is_ready or self.draft is None:
            return False
        section = parse_section(event.section)
        if section is None:
            return False
        self._apply_section(section)
        return True

    def _run_validate_all(self, mode: ValidationMode) -> ValidationSummary:
        summary = validate_all_sections(self.draft, mode, self.context)
        self.errors_by_path = dict(summary.errors_by_path)
        self.validity = dict(summary.validity)
        self.touched.update(summary.errors_by_path)
        self.last_summary = summary
        return summary

    def _on_validate_all(self, event: ValidateAll) -> bool:
        if not self.is_ready or self.draft is None:
            return False
        self._run_validate_all(event.mode or self.validation_mode)
        return True

    def _on_set_tab(self, event: SetTab) -> bool:
        if not self.is_ready or self.draft is None:
            return False
        section = parse_section(event.section)
        if section is None:
            return False
        self.active_tab = section
        self._apply_section(self.active_tab)
        return True

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def _on_save_request(self, event: SaveRequest) -> bool:
        if self.state not in _EDITABLE_STATES or self.draft is None:
            return False
        self._run_validate_all(event.mode or self.validation_mode)
        self.last_error = None
        return self._enter(EditorState.SAVING)

    def _on_save_succeeded(self, event: SaveSucceeded) -> bool:
        if self.state is not EditorState.SAVING:
            return False
        problem = _document_problem(event.document)
        if problem is not None:
            return self._on_save_failed(SaveFailed(problem))
        self._seed(contract_draft.from_persisted(event.document), event.document)
        return self._enter(EditorState.IDLE)

    def _on_save_failed(self, event: SaveFailed) -> bool:
        if self.state is not EditorState.SAVING:
            return False
        self.last_error = event.message
        logger.warning(
            "editor.save.failed",
            extra={"event": "editor.save.failed", "contract_id": self.contract_id, "error": event.message},
        )
        return self._enter(EditorState.SAVE_ERROR)

    def _on_reset(self, event: Reset) -> bool:
        if self.state in {EditorState.LOADING, EditorState.SAVING}:
            return False
        if self._snapshot is not None:
            draft = contract_draft.snapshot(self._snapshot)
        elif self.document is not None:
            draft = contract_draft.reset(self.document)
        else:
            return False
        self.draft = draft
        self._clear_validation()
        self.dirty = False
        self.last_error = None
        return self._enter(EditorState.IDLE)

    # ------------------------------------------------------------------
    # Convenience wrappers
    # ------------------------------------------------------------------

    def begin_load(self, contract_id: str) -> bool:
        return self.send(BeginLoad(contract_id))

    def load_succeeded(self, document: Mapping[str, Any], contract_id: str | None = None) -> bool:
        return self.send(LoadSucceeded(document, contract_id))

    def load_failed(self, message: str, contract_id: str | None = None) -> bool:
        return self.send(LoadFailed(message, contract_id))

    def create_new(self, location_id: str | None = None) -> bool:
        return self.send(CreateNew(location_id))

    def field_patch(self, path: str, value: Any) -> bool:
        return self.send(FieldPatch(path, value))

    def touch(self, path: str) -> bool:
        return self.send(Touch(path))

    def validate_section(self, section: ContractSection) -> bool:
        return self.send(ValidateSection(section))

    def validate_all(self, mode: ValidationMode | None = None) -> ValidationSummary | None:
        if not self.send(ValidateAll(mode)):
            return None
        return self.last_summary

    def save_request(self, mode: ValidationMode | None = None) -> bool:
        return self.send(SaveRequest(mode))

    def save_succeeded(self, document: Mapping[str, Any]) -> bool:
        return self.send(SaveSucceeded(document))

    def save_failed(self, message: str) -> bool:
        return self.send(SaveFailed(message))

    def reset(self) -> bool:
        return self.send(Reset())

    def set_tab(self, section: ContractSection) -> bool:
        return self.send(SetTab(section))
