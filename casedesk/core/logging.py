"""Structured logging helpers for editing sessions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LogContext:
    """Normalized context fields expected in structured logs."""

    contract_id: str | None = None
    location_id: str | None = None
    state: str | None = None


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Build a normalized structured log payload."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "contract_id": context.contract_id,
        "location_id": context.location_id,
        "state": context.state,
    }
    payload.update(fields)
    return payload
