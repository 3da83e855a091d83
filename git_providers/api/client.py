"""
REST Client with Timeout and Retry Logic
========================================

Shared HTTP transport for the GitHub and GitLab REST adapters:
- Bearer token authentication (token held as ``SecretStr``)
- Configurable timeouts (default 30s)
- Exponential backoff retry for transient failures and rate limits
- HTTP status mapped onto the provider error taxonomy
- Timing and attempt logging

Each request opens its own ``aiohttp.ClientSession``; nothing is shared
between calls.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import aiohttp
from pydantic import SecretStr, ValidationError

from ..core.exceptions import (
    ErrorContext,
    ForbiddenError,
    InvalidRequestError,
    NotAuthenticatedError,
    NotFoundError,
    ParseError,
    ProviderError,
    RateLimitedError,
    TransientError,
)
from ..core.logging import Timer
from ..core.retry import API_RETRY_CONFIG, RetryConfig, call_with_retry
from ..protocol import ServiceTag, Transport
from .models import ApiErrorBody

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_PUBLIC_API_URLS = {
    ServiceTag.GITHUB: "https://api.github.com",
    ServiceTag.GITLAB: "https://gitlab.com/api/v4",
}

_SELF_MANAGED_API_PATHS = {
    ServiceTag.GITHUB: "/api/v3",
    ServiceTag.GITLAB: "/api/v4",
}

_INVALID_STATUSES = frozenset({400, 409, 422})


def api_base_url(service: ServiceTag, host: str | None = None) -> str:
    """
    Default API root for a service.

    Args:
        service: Hosting service
        host: Self-managed hostname, or None for the public instance

    Returns:
        Base URL without a trailing slash
    """
    if host is None:
        return _PUBLIC_API_URLS[service]
    return f"https://{host}{_SELF_MANAGED_API_PATHS[service]}"


def resolve_api_url(service: ServiceTag, url: str) -> str:
    """
    Turn an instance URL into an API root.

    ``https://gitlab.example.com`` becomes ``https://gitlab.example.com/api/v4``;
    URLs that already point at an API (``.../api/...`` or ``api.github.com``)
    are kept as given.
    """
    url = url.strip().rstrip("/")
    if "://" not in url:
        url = f"https://{url}"
    parts = urlsplit(url)
    if "/api/" in f"{parts.path}/" or (parts.hostname or "").startswith("api."):
        return url
    return f"{url}{_SELF_MANAGED_API_PATHS[service]}"


@dataclass(frozen=True)
class HttpResponse:
    """Result of a single HTTP exchange. Header names are lowercase."""

    status: int
    body: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


class RestClient:
    """
    Async REST client for one service instance.

    Usage:
        client = RestClient(
            ServiceTag.GITLAB,
            base_url="https://gitlab.com/api/v4",
            token=SecretStr("glpat-..."),
        )
        user = await client.request("GET", "/user", operation="check_auth")
    """

    def __init__(
        self,
        service: ServiceTag,
        base_url: str,
        token: SecretStr | None,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
    ):
        self.service = service
        self.base_url = base_url.rstrip("/")
        self._token = token
        self.timeout = timeout
        self.retry_config = retry_config or API_RETRY_CONFIG

    @property
    def has_token(self) -> bool:
        return self._token is not None and bool(self._token.get_secret_value())

    def _context(self, operation: str, **extra: Any) -> ErrorContext:
        return ErrorContext(
            operation=operation,
            service=self.service.value,
            transport=Transport.API.value,
            extra=extra,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token.get_secret_value()}",
            "Accept": "application/json",
            "User-Agent": "git-providers",
        }

    async def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        json_body: Mapping[str, Any] | None = None,
        operation: str = "request",
    ) -> Any:
        """
        Execute an API request with timeout and retry logic.

        Args:
            method: HTTP method
            path: Path below the base URL (leading slash)
            params: Query parameters
            json_body: JSON request body
            operation: Logical operation name for logs and errors

        Returns:
            Decoded JSON body (None for an empty body)

        Raises:
            NotAuthenticatedError: No token configured, or 401
            ProviderError: Mapped from the response status or network failure
        """
        if not self.has_token:
            raise NotAuthenticatedError(
                f"No {self.service.display_name} API token configured",
                context=self._context(operation),
            )

        url = f"{self.base_url}{path}"
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}

        async def attempt() -> Any:
            with Timer(f"{method} {path}") as timer:
                response = await self._send(method, url, query, json_body, operation)
            logger.debug(
                f"{self.service.display_name} API {method} {path} -> {response.status}",
                extra={
                    "duration_ms": timer.duration_ms,
                    "status": response.status,
                    "transport": Transport.API.value,
                },
            )
            return self._handle(response, method, path, operation)

        return await call_with_retry(
            attempt,
            self.retry_config,
            description=f"{self.service.display_name} API {method} {path}",
        )

    async def _send(
        self,
        method: str,
        url: str,
        params: Mapping[str, str],
        json_body: Mapping[str, Any] | None,
        operation: str,
    ) -> HttpResponse:
        """Perform exactly one HTTP exchange."""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(
                    method,
                    url,
                    headers=self._headers(),
                    params=params or None,
                    json=json_body,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    body = await response.text()
                    headers = {k.lower(): v for k, v in response.headers.items()}
                    return HttpResponse(status=response.status, body=body, headers=headers)
        except asyncio.TimeoutError as e:
            raise TransientError(
                f"{method} request timed out after {self.timeout}s",
                context=self._context(operation),
                cause=e,
            ) from e
        except aiohttp.ClientError as e:
            raise TransientError(
                f"{method} request failed: {type(e).__name__}",
                context=self._context(operation),
                cause=e,
            ) from e

    def _handle(
        self, response: HttpResponse, method: str, path: str, operation: str
    ) -> Any:
        if response.ok:
            if not response.body.strip():
                return None
            try:
                return json.loads(response.body)
            except ValueError as e:
                raise ParseError(
                    f"{method} {path} returned a non-JSON body",
                    context=self._context(operation, status=response.status),
                    cause=e,
                ) from e

        raise self._error_for(response, method, path, operation)

    def _error_for(
        self, response: HttpResponse, method: str, path: str, operation: str
    ) -> ProviderError:
        """Map a non-2xx response onto the error taxonomy."""
        status = response.status
        context = self._context(operation, status=status)
        detail = f"{method} {path} returned {status}"
        message = _error_message(response.body)
        if message:
            detail = f"{detail}: {message}"

        if status == 401:
            return NotAuthenticatedError(
                f"{self.service.display_name} rejected the API token ({detail})", context
            )
        if status == 429 or (status == 403 and _rate_limit_exhausted(response)):
            return RateLimitedError(
                f"{self.service.display_name} rate limit exceeded ({detail})",
                retry_after=retry_after_seconds(response),
                context=context,
            )
        if status == 403:
            return ForbiddenError(f"Permission denied ({detail})", context)
        if status == 404:
            return NotFoundError(f"Not found ({detail})", context)
        if status in _INVALID_STATUSES:
            return InvalidRequestError(detail, context)
        if status >= 500:
            return TransientError(detail, context)
        return InvalidRequestError(detail, context)


def _error_message(body: str) -> str:
    if not body.strip():
        return ""
    try:
        return ApiErrorBody.model_validate_json(body).text()
    except ValidationError:
        return body.strip()[:200]


def _rate_limit_exhausted(response: HttpResponse) -> bool:
    return (
        response.header("x-ratelimit-remaining") == "0"
        or response.header("retry-after") is not None
    )


def retry_after_seconds(response: HttpResponse, now: float | None = None) -> float | None:
    """
    Extract the server's retry-after hint in seconds.

    Uses ``Retry-After`` (seconds) first, then ``X-RateLimit-Reset`` /
    ``RateLimit-Reset`` (epoch seconds).
    """
    retry_after = response.header("retry-after")
    if retry_after is not None:
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            pass

    reset = response.header("x-ratelimit-reset") or response.header("ratelimit-reset")
    if reset is not None:
        try:
            current = time.time() if now is None else now
            return max(0.0, float(reset) - current)
        except ValueError:
            return None
    return None
