"""
Provider Exceptions
===================

Closed error taxonomy shared by every transport (CLI and REST) and by the
providers themselves.

Provides structured error handling with:
- A fixed set of error kinds callers can map to generic advice
- Retryable vs non-retryable errors (REST retry budget)
- Fallback-triggering errors (CLI -> REST dispatch)
- Error codes for monitoring
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Every failure surfaced by this package is exactly one of these."""

    NOT_INSTALLED = "not_installed"
    NOT_AUTHENTICATED = "not_authenticated"
    FORBIDDEN = "forbidden"
    NOT_SUPPORTED_BY_TRANSPORT = "not_supported_by_transport"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    PARSE_ERROR = "parse_error"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    operation: str = ""
    service: str = ""
    transport: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        if self.operation:
            result["operation"] = self.operation
        if self.service:
            result["service"] = self.service
        if self.transport:
            result["transport"] = self.transport
        result.update(self.extra)
        return result


class ProviderError(Exception):
    """
    Base exception for all git provider errors.

    Subclasses pin ``kind`` and the two policy flags:

    - ``retryable``: the REST client may try the same request again
    - ``falls_back``: a provider may retry the logical call on its next
      transport instead of surfacing the error
    """

    error_code: str = "PROVIDER_ERROR"
    kind: ErrorKind = ErrorKind.TRANSIENT
    retryable: bool = False
    falls_back: bool = False
    user_action: str = "Try again later."

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.context.operation:
            parts.append(f"[operation={self.context.operation}]")
        if self.cause:
            parts.append(f"[caused by: {type(self.cause).__name__}: {self.cause}]")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and monitoring."""
        return {
            "error_code": self.error_code,
            "kind": self.kind.value,
            "retryable": self.retryable,
            "falls_back": self.falls_back,
            "message": self.message,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# Transport availability


class NotInstalledError(ProviderError):
    """Required command-line tool is missing (CLI transport only)."""

    error_code = "NOT_INSTALLED"
    kind = ErrorKind.NOT_INSTALLED
    falls_back = True

    def __init__(
        self,
        tool: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(
            f"Command-line tool not installed: {tool}", context, cause
        )
        self.tool = tool

    @property
    def user_action(self) -> str:  # type: ignore[override]
        return f"Install `{self.tool}` or configure an API token."


class NotSupportedByTransportError(ProviderError):
    """The transport cannot perform this operation; another one may."""

    error_code = "NOT_SUPPORTED_BY_TRANSPORT"
    kind = ErrorKind.NOT_SUPPORTED_BY_TRANSPORT
    falls_back = True
    user_action = "Configure an API token to enable this feature."

    def __init__(
        self,
        feature: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(f"Feature not supported: {feature}", context, cause)
        self.feature = feature


# Authentication / authorization


class NotAuthenticatedError(ProviderError):
    """No valid session or token."""

    error_code = "NOT_AUTHENTICATED"
    kind = ErrorKind.NOT_AUTHENTICATED
    falls_back = True
    user_action = "Log in with the service's CLI or provide an API token."


class ForbiddenError(ProviderError):
    """Authenticated, but without permission for the operation."""

    error_code = "FORBIDDEN"
    kind = ErrorKind.FORBIDDEN
    user_action = "Check your permissions on the repository."


# Request errors


class NotFoundError(ProviderError):
    """Target repository, merge request, or resource does not exist."""

    error_code = "NOT_FOUND"
    kind = ErrorKind.NOT_FOUND
    user_action = "Check the repository and merge request number."


class InvalidRequestError(ProviderError):
    """Caller-supplied data was rejected."""

    error_code = "INVALID_REQUEST"
    kind = ErrorKind.INVALID_REQUEST
    user_action = "Check the branches and request details."

    def __init__(
        self,
        detail: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(f"Invalid request: {detail}", context, cause)
        self.detail = detail


# Network errors


class TransientError(ProviderError):
    """Network failure, timeout, or server-side error."""

    error_code = "TRANSIENT"
    kind = ErrorKind.TRANSIENT
    retryable = True

    def __init__(
        self,
        detail: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(f"Transient failure: {detail}", context, cause)
        self.detail = detail


class RateLimitedError(ProviderError):
    """The service rejected the request because of rate limiting."""

    error_code = "RATE_LIMITED"
    kind = ErrorKind.RATE_LIMITED
    retryable = True

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: float | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, context, cause)
        self.retry_after = retry_after

    @property
    def user_action(self) -> str:  # type: ignore[override]
        if self.retry_after:
            return f"Try again in {int(self.retry_after) + 1} seconds."
        return "Try again later."

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["retry_after"] = self.retry_after
        return result


# Parsing


class ParseError(ProviderError):
    """Malformed remote URL or unparseable transport output."""

    error_code = "PARSE_ERROR"
    kind = ErrorKind.PARSE_ERROR
    user_action = "Check the repository remote URL."

    def __init__(
        self,
        detail: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(f"Failed to parse: {detail}", context, cause)
        self.detail = detail


# Helper functions


def is_retryable(error: Exception) -> bool:
    """Check if an error is worth retrying on the same transport."""
    if isinstance(error, ProviderError):
        return error.retryable
    return False


def allows_fallback(error: Exception) -> bool:
    """Check if a provider should try its next transport after this error."""
    return isinstance(error, ProviderError) and error.falls_back


def get_error_code(error: Exception) -> str:
    """Get the error code for an exception."""
    if isinstance(error, ProviderError):
        return error.error_code
    return type(error).__name__.upper()
