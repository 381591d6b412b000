"""HTTP client for the remote tabular-database API."""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Mapping

import httpx

from nococli.config.manager import EffectiveConfig
from nococli.config.models import DEFAULT_RETRY_STATUS_CODES
from nococli.core.logging import Logger, get_logger
from nococli.errors import (
    AuthenticationError,
    ConflictError,
    NetworkError,
    NocoError,
    NotFoundError,
    ValidationError,
)

__all__ = ["NocoClient", "client_from_config"]


def _records_path(table_id: str) -> str:
    return f"/api/v2/tables/{table_id}/records"


def _clean_query(query: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if not query:
        return None
    return {key: value for key, value in query.items() if value is not None}


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_message(payload: Any, response: httpx.Response) -> str:
    if isinstance(payload, Mapping):
        for key in ("msg", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()


class NocoClient:
    """Thin synchronous wrapper over :class:`httpx.Client`.

    Failed responses are raised as :mod:`nococli.errors` types. Responses
    whose status is in ``retry_status_codes`` and transport failures are
    retried ``retry_count`` times, ``retry_delay`` milliseconds apart.

    Example:
        >>> transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        >>> with NocoClient("https://x.test", transport=transport) as client:
        ...     client.request("GET", "/api/v2/meta/bases")
        {}
    """

    def __init__(
        self,
        base_url: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout_ms: int = 30000,
        retry_count: int = 3,
        retry_delay: int = 1000,
        retry_status_codes: Iterable[int] = DEFAULT_RETRY_STATUS_CODES,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=dict(headers or {}),
            timeout=timeout_ms / 1000,
            transport=transport,
        )
        self._retry_count = max(0, retry_count)
        self._retry_delay = max(0, retry_delay) / 1000
        self._retry_status_codes = frozenset(retry_status_codes)
        self._sleep = sleep or time.sleep
        self._logger = logger or get_logger(__name__, component="noco-client")

    def __enter__(self) -> "NocoClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    def request(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ValidationError: On HTTP 400.
            AuthenticationError: On HTTP 401 or 403.
            NotFoundError: On HTTP 404.
            ConflictError: On HTTP 409.
            NocoError: On any other HTTP error status (code ``HTTP_ERROR``).
            NetworkError: When the server cannot be reached.
        """

        url = path if path.startswith("/") else f"/{path}"
        params = _clean_query(query)
        attempts = self._retry_count + 1
        for attempt in range(1, attempts + 1):
            try:
                if body is None:
                    response = self._client.request(method, url, params=params)
                else:
                    response = self._client.request(
                        method,
                        url,
                        params=params,
                        json=body,
                    )
            except httpx.TransportError as exc:
                if attempt < attempts:
                    self._retry_wait(method, url, attempt, error=str(exc))
                    continue
                message = str(exc) or exc.__class__.__name__
                raise NetworkError(
                    f"Request to {url} failed: {message}",
                    cause=exc,
                ) from exc

            if (
                response.status_code in self._retry_status_codes
                and attempt < attempts
            ):
                self._retry_wait(
                    method,
                    url,
                    attempt,
                    status=response.status_code,
                )
                continue
            return self._handle(response, url)

        raise AssertionError("unreachable")  # pragma: no cover

    def _retry_wait(self, method: str, url: str, attempt: int, **context: Any) -> None:
        self._logger.info(
            "request-retry",
            method=method,
            path=url,
            attempt=attempt,
            **context,
        )
        if self._retry_delay:
            self._sleep(self._retry_delay)

    def _handle(self, response: httpx.Response, url: str) -> Any:
        payload = _decode(response)
        status = response.status_code
        if status < 400:
            return payload

        message = _error_message(payload, response)
        self._logger.debug("request-failed", path=url, status=status)
        if status == 400:
            raise ValidationError(message, data=payload)
        if status in (401, 403):
            raise AuthenticationError(message, status_code=status, data=payload)
        if status == 404:
            raise NotFoundError("Resource", url, message=message, data=payload)
        if status == 409:
            raise ConflictError(message, data=payload)
        raise NocoError(
            message,
            code="HTTP_ERROR",
            status_code=status,
            data=payload,
        )

    # ------------------------------------------------------------------
    # Rows capability
    # ------------------------------------------------------------------
    def list_records(
        self,
        table_id: str,
        query: Mapping[str, Any] | None = None,
    ) -> Any:
        return self.request("GET", _records_path(table_id), query=query)

    def create_records(self, table_id: str, payload: Any) -> Any:
        return self.request("POST", _records_path(table_id), body=payload)

    def update_records(self, table_id: str, payload: Any) -> Any:
        return self.request("PATCH", _records_path(table_id), body=payload)

    def delete_records(self, table_id: str, payload: Any) -> Any:
        return self.request("DELETE", _records_path(table_id), body=payload)


def client_from_config(
    effective: EffectiveConfig,
    *,
    transport: httpx.BaseTransport | None = None,
    sleep: Callable[[float], None] | None = None,
) -> NocoClient:
    """Build a :class:`NocoClient` from resolved configuration.

    Raises:
        ValidationError: If no workspace (and so no base URL) is configured.
    """

    workspace = effective.workspace
    if workspace is None or not workspace.base_url:
        raise ValidationError(
            "No base URL configured. Add a workspace with `noco workspace add` "
            "or set NOCO_BASE_URL."
        )
    settings = effective.settings
    return NocoClient(
        workspace.base_url,
        headers=workspace.headers,
        timeout_ms=settings.timeout_ms,
        retry_count=settings.retry_count,
        retry_delay=settings.retry_delay,
        retry_status_codes=settings.retry_status_codes,
        transport=transport,
        sleep=sleep,
    )
