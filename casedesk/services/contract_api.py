"""HTTP client for the contract backend: load, two-phase save and id allocation."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from pydantic import ValidationError

from casedesk.core.config import Config, get_config
from casedesk.core.exceptions import NotFoundError, ProtocolError, TransportError
from casedesk.schemas.contracts import ContractDocument
from casedesk.schemas.save_models import DraftValidationResponse, NextIdsResponse, SaveDraftRequest

logger = logging.getLogger(__name__)

_CONNECT_TIMEOUT_SECONDS = 2
# Statuses whose body carries validation errors rather than a transport failure.
_VALIDATION_STATUSES = {400, 422}


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail", "title"):
            if body.get(key):
                return str(body[key])
    text = (response.text or "").strip()
    return text or f"Request failed with status {response.status_code}"


def _error_strings(errors: Any) -> list[str]:
    if not isinstance(errors, list):
        return [str(errors)] if errors else []
    messages = []
    for error in errors:
        if isinstance(error, dict):
            messages.append(str(error.get("message") or error.get("error") or error))
        else:
            messages.append(str(error))
    return messages


class ContractApi:
    """
    Thin wrapper over ``requests``.

    Reads are retried on connection failures and 5xx answers; the save steps are
    never retried so a commit is attempted at most once per token.
    """

    def __init__(
        self,
        base_url: str | None = None,
        session: requests.Session | None = None,
        config: Config | None = None,
    ) -> None:
        config = config or get_config()
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = (_CONNECT_TIMEOUT_SECONDS, config.API_TIMEOUT_SECONDS)
        self.max_retries = config.API_MAX_RETRIES
        self.retry_backoff_seconds = config.API_RETRY_BACKOFF_SECONDS

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        retry: bool = False,
        passthrough_statuses: frozenset[int] | set[int] = frozenset(),
    ) -> requests.Response:
        url = self._url(path)
        total_attempts = self.max_retries + 1 if retry else 1
        last_error = "unknown"

        for attempt in range(1, total_attempts + 1):
            try:
                response = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
            except requests.exceptions.RequestException as exc:
                last_error = str(exc)
            else:
                if response.status_code < 400 or response.status_code in passthrough_statuses:
                    return response
                message = _error_message(response)
                if response.status_code == 404:
                    raise NotFoundError(message)
                if response.status_code < 500:
                    raise TransportError(message)
                last_error = message

            logger.warning(
                "contract_api.request.failed",
                extra={
                    "event": "contract_api.request.failed",
                    "path": path,
                    "attempt": attempt,
                    "attempts_total": total_attempts,
                    "error": last_error,
                },
            )
            if attempt < total_attempts:
                time.sleep(self.retry_backoff_seconds * attempt)

        logger.error(
            "contract_api.request.unavailable",
            extra={"event": "contract_api.request.unavailable", "path": path, "error": last_error},
        )
        raise TransportError(last_error)

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolError("Backend response is not valid JSON") from exc

    @staticmethod
    def _contract_body(body: Any) -> dict[str, Any]:
        try:
            ContractDocument.model_validate(body)
        except ValidationError as exc:
            raise ProtocolError(f"Backend returned a malformed contract: {exc.error_count()} problem(s)") from exc
        return body

    def get(self, contract_id: str) -> dict[str, Any] | None:
        """Fetch a persisted contract; ``None`` when the backend does not know the id."""
        response = self._request("GET", f"/contracts/{contract_id}", retry=True, passthrough_statuses={404})
        if response.status_code == 404:
            return None
        return self._contract_body(self._json(response))

    def validate_draft(self, payload: dict[str, Any]) -> DraftValidationResponse:
        response = self._request(
            "POST",
            "/contracts/save/draft/validate",
            json=payload,
            passthrough_statuses=_VALIDATION_STATUSES,
        )
        body = self._json(response)
        if not isinstance(body, dict):
            raise ProtocolError("Validation response must be a JSON object")
        if response.status_code in _VALIDATION_STATUSES:
            errors = _error_strings(body.get("errors")) or [_error_message(response)]
            return DraftValidationResponse(errors=errors)
        try:
            return DraftValidationResponse.model_validate({**body, "errors": _error_strings(body.get("errors"))})
        except ValidationError as exc:
            raise ProtocolError("Validation response is malformed") from exc

    def save_draft(self, save_token: str) -> dict[str, Any]:
        """Commit a previously validated candidate. Never retried."""
        try:
            request = SaveDraftRequest(save_token=save_token)
        except ValidationError as exc:
            raise ProtocolError("A save token is required to commit") from exc
        response = self._request("POST", "/contracts/save/draft", json=request.model_dump(by_alias=True))
        return self._contract_body(self._json(response))

    def next_ids(self, count: int) -> list[str]:
        response = self._request("GET", "/ids/next", params={"count": count}, retry=True)
        try:
            ids = NextIdsResponse.model_validate(self._json(response)).ids
        except ValidationError as exc:
            raise ProtocolError("Id allocation response is malformed") from exc
        if len(ids) < count:
            raise ProtocolError(f"Requested {count} ids, backend returned {len(ids)}")
        return ids[:count]
