"""JSON log output for editing sessions."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from casedesk.core.config import get_config

# Structured fields copied from ``extra`` onto each JSON line.
SESSION_FIELDS = (
    "event",
    "contract_id",
    "location_id",
    "state",
    "section",
    "path",
    "status",
    "attempt",
    "attempts_total",
    "error",
    "error_count",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, carrying the session fields that were logged."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field_name in SESSION_FIELDS:
            value = getattr(record, field_name, None)
            if value is not None:
                payload[field_name] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(level: str | None = None) -> None:
    """Install the JSON handlers on the root logger unless something already did."""
    config = get_config()
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO))
    formatter = JsonFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.LOG_FILE:
        handlers.append(logging.FileHandler(config.LOG_FILE))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    if config.is_production:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
