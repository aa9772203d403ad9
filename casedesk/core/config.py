"""Configuration module for the casedesk application."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from casedesk.core.exceptions import ConfigurationError

load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    API_BASE_URL: str
    API_TIMEOUT_SECONDS: int
    API_MAX_RETRIES: int
    API_RETRY_BACKOFF_SECONDS: float
    SALE_DATE_MIN_YEAR: int
    LOG_LEVEL: str
    LOG_FILE: str

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=(resolved_env != "production"))

    config = Config(
        APP_NAME="casedesk",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        API_BASE_URL=os.getenv("API_BASE_URL", "http://localhost:5000/api/v1").rstrip("/"),
        API_TIMEOUT_SECONDS=int(os.getenv("API_TIMEOUT_SECONDS", "30")),
        API_MAX_RETRIES=int(os.getenv("API_MAX_RETRIES", "2")),
        API_RETRY_BACKOFF_SECONDS=float(os.getenv("API_RETRY_BACKOFF_SECONDS", "0.5")),
        SALE_DATE_MIN_YEAR=int(os.getenv("SALE_DATE_MIN_YEAR", "1900")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
    )
    _validate_config(config)
    return config


def _validate_api_base_url(api_base_url: str) -> None:
    parsed = urlparse(api_base_url)
    if parsed.scheme not in {"http", "https"}:
        raise ConfigurationError("API_BASE_URL must use http:// or https://.")
    if not parsed.hostname:
        raise ConfigurationError("API_BASE_URL is missing hostname.")


def _validate_config(config: Config) -> None:
    _validate_api_base_url(config.API_BASE_URL)

    if config.API_TIMEOUT_SECONDS < 1:
        raise ConfigurationError("API_TIMEOUT_SECONDS must be >= 1.")
    if config.API_MAX_RETRIES < 0:
        raise ConfigurationError("API_MAX_RETRIES must be >= 0.")
    if config.API_RETRY_BACKOFF_SECONDS < 0:
        raise ConfigurationError("API_RETRY_BACKOFF_SECONDS must be >= 0.")
    if not 1000 <= config.SALE_DATE_MIN_YEAR <= 9999:
        raise ConfigurationError("SALE_DATE_MIN_YEAR must be a four-digit year.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and config.API_BASE_URL.startswith("http://localhost"):
        raise ConfigurationError("Production API_BASE_URL points at localhost.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
