"""Canonical state transition tables for editor sessions and contract lifecycle."""

from __future__ import annotations

from casedesk.core.enums import EditorState, SaleStatus


class InvalidTransitionError(ValueError):
    """Raised by :meth:`StateMachine.assert_transition` for a move the table does not list."""


class StateMachine:
    """
    Allowed moves between editor states or between contract lifecycle statuses.

    The editor asks ``can_transition`` and ignores the event when it is refused;
    ``assert_transition`` is for callers that treat a bad move as a bug.
    """

    def __init__(self, transitions: dict[str, set[str]]) -> None:
        self._transitions = {state: frozenset(targets) for state, targets in transitions.items()}

    def can_transition(self, current: str, target: str) -> bool:
        return target in self._transitions.get(current, frozenset())

    def assert_transition(self, current: str, target: str) -> None:
        if not self.can_transition(current=current, target=target):
            raise InvalidTransitionError(f"Transition not allowed: {current} -> {target}")


_READY_STATES = {
    EditorState.IDLE,
    EditorState.EDITING,
    EditorState.SAVING,
    EditorState.SAVE_ERROR,
}

# Staying in place is listed explicitly: touch/validate events keep the state.
EDITOR_TRANSITIONS: dict[str, set[str]] = {
    EditorState.LOADING: {EditorState.IDLE, EditorState.ERROR, EditorState.LOADING},
    EditorState.IDLE: {EditorState.IDLE, EditorState.EDITING, EditorState.SAVING, EditorState.LOADING},
    EditorState.EDITING: {EditorState.IDLE, EditorState.EDITING, EditorState.SAVING, EditorState.LOADING},
    EditorState.SAVING: {EditorState.IDLE, EditorState.SAVE_ERROR, EditorState.SAVING},
    EditorState.SAVE_ERROR: {
        EditorState.IDLE,
        EditorState.EDITING,
        EditorState.SAVING,
        EditorState.SAVE_ERROR,
        EditorState.LOADING,
    },
    EditorState.ERROR: {EditorState.IDLE, EditorState.LOADING, EditorState.ERROR},
}

CONTRACT_STATUS_TRANSITIONS: dict[str, set[str]] = {
    SaleStatus.DRAFT.name: {SaleStatus.FINALIZED.name},
    SaleStatus.FINALIZED.name: {SaleStatus.DRAFT.name, SaleStatus.EXECUTED.name, SaleStatus.VOID.name},
    SaleStatus.EXECUTED.name: {SaleStatus.VOID.name},
    SaleStatus.VOID.name: set(),
}


def editor_state_machine() -> StateMachine:
    return StateMachine(EDITOR_TRANSITIONS)


def contract_status_machine() -> StateMachine:
    return StateMachine(CONTRACT_STATUS_TRANSITIONS)


def is_ready_state(state: EditorState) -> bool:
    return state in _READY_STATES
