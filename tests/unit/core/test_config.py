from __future__ import annotations

import pytest

from casedesk.core.config import get_config
from casedesk.core.exceptions import ConfigurationError


def test_defaults_are_valid(monkeypatch):
    monkeypatch.delenv("API_BASE_URL", raising=False)
    monkeypatch.delenv("SALE_DATE_MIN_YEAR", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)
    config = get_config("development")
    assert config.API_BASE_URL == "http://localhost:5000/api/v1"
    assert config.SALE_DATE_MIN_YEAR == 1900
    assert config.DEBUG is True


def test_base_url_trailing_slash_is_trimmed(monkeypatch):
    monkeypatch.setenv("API_BASE_URL", "https://contracts.example.com/api/v1/")
    assert get_config("development").API_BASE_URL == "https://contracts.example.com/api/v1"


def test_rejects_non_http_base_url(monkeypatch):
    monkeypatch.setenv("API_BASE_URL", "ftp://contracts.example.com")
    with pytest.raises(ConfigurationError, match="http"):
        get_config("development")


def test_rejects_negative_retries(monkeypatch):
    monkeypatch.setenv("API_MAX_RETRIES", "-1")
    with pytest.raises(ConfigurationError, match="API_MAX_RETRIES"):
        get_config("development")


def test_production_rejects_localhost(monkeypatch):
    monkeypatch.delenv("API_BASE_URL", raising=False)
    with pytest.raises(ConfigurationError, match="localhost"):
        get_config("production")
