"""Process bootstrap: logging first, then a fail-fast look at the backend settings."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from casedesk.core.config import get_config
from casedesk.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def validate_startup_config() -> None:
    config = get_config()
    parsed = urlparse(config.API_BASE_URL)

    if config.is_production and parsed.scheme == "http":
        logger.warning(
            "startup.production.plain_http_detected",
            extra={"event": "startup.production.plain_http_detected"},
        )

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "api_host": parsed.hostname,
            "api_scheme": parsed.scheme,
        },
    )


def bootstrap() -> None:
    """Initialize logging and validate runtime configuration."""
    configure_logging()
    validate_startup_config()
