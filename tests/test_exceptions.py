"""
Tests for core/exceptions.py
============================

The error taxonomy and its retry/fallback policy flags.
"""

import pytest

from git_providers.core.exceptions import (
    ErrorContext,
    ErrorKind,
    ForbiddenError,
    InvalidRequestError,
    NotAuthenticatedError,
    NotFoundError,
    NotInstalledError,
    NotSupportedByTransportError,
    ParseError,
    ProviderError,
    RateLimitedError,
    TransientError,
    allows_fallback,
    get_error_code,
    is_retryable,
)


class TestErrorContext:
    """Tests for ErrorContext dataclass."""

    def test_empty_context(self):
        assert ErrorContext().to_dict() == {}

    def test_full_context(self):
        context = ErrorContext(
            operation="get_status",
            service="gitlab",
            transport="api",
            extra={"status": 404},
        )
        assert context.to_dict() == {
            "operation": "get_status",
            "service": "gitlab",
            "transport": "api",
            "status": 404,
        }


class TestProviderError:
    """Tests for the base exception."""

    def test_str_includes_operation_and_cause(self):
        cause = OSError("connection reset")
        error = ProviderError(
            "boom", context=ErrorContext(operation="create_merge_request"), cause=cause
        )
        text = str(error)
        assert "boom" in text
        assert "[operation=create_merge_request]" in text
        assert "OSError: connection reset" in text

    def test_to_dict(self):
        error = NotFoundError("Not found", ErrorContext(service="github"))
        data = error.to_dict()
        assert data["error_code"] == "NOT_FOUND"
        assert data["kind"] == "not_found"
        assert data["retryable"] is False
        assert data["falls_back"] is False
        assert data["context"] == {"service": "github"}
        assert data["cause"] is None


class TestTaxonomy:
    """Every kind maps to exactly one class with fixed policy flags."""

    @pytest.mark.parametrize(
        "error, kind, retryable, falls_back",
        [
            (NotInstalledError("gh"), ErrorKind.NOT_INSTALLED, False, True),
            (NotAuthenticatedError("no token"), ErrorKind.NOT_AUTHENTICATED, False, True),
            (ForbiddenError("denied"), ErrorKind.FORBIDDEN, False, False),
            (
                NotSupportedByTransportError("comments"),
                ErrorKind.NOT_SUPPORTED_BY_TRANSPORT,
                False,
                True,
            ),
            (NotFoundError("missing"), ErrorKind.NOT_FOUND, False, False),
            (InvalidRequestError("bad branch"), ErrorKind.INVALID_REQUEST, False, False),
            (RateLimitedError(retry_after=5), ErrorKind.RATE_LIMITED, True, False),
            (TransientError("502"), ErrorKind.TRANSIENT, True, False),
            (ParseError("bad json"), ErrorKind.PARSE_ERROR, False, False),
        ],
    )
    def test_flags(self, error, kind, retryable, falls_back):
        assert error.kind is kind
        assert is_retryable(error) is retryable
        assert allows_fallback(error) is falls_back

    def test_all_kinds_covered(self):
        classes = [
            NotInstalledError,
            NotAuthenticatedError,
            ForbiddenError,
            NotSupportedByTransportError,
            NotFoundError,
            InvalidRequestError,
            RateLimitedError,
            TransientError,
            ParseError,
        ]
        assert {cls.kind for cls in classes} == set(ErrorKind)


class TestSpecificErrors:
    def test_not_installed_names_tool(self):
        error = NotInstalledError("glab")
        assert error.tool == "glab"
        assert "glab" in str(error)
        assert "glab" in error.user_action

    def test_rate_limited_user_action(self):
        assert "3 seconds" in RateLimitedError(retry_after=2.5).user_action
        assert RateLimitedError().user_action == "Try again later."

    def test_rate_limited_to_dict(self):
        assert RateLimitedError(retry_after=10).to_dict()["retry_after"] == 10

    def test_message_prefixes(self):
        assert str(InvalidRequestError("x")).startswith("Invalid request: x")
        assert str(TransientError("x")).startswith("Transient failure: x")
        assert str(ParseError("x")).startswith("Failed to parse: x")

    def test_feature_recorded(self):
        assert NotSupportedByTransportError("comments").feature == "comments"


class TestHelpers:
    def test_plain_exceptions_are_not_retryable(self):
        assert is_retryable(ValueError("x")) is False
        assert allows_fallback(ValueError("x")) is False

    def test_get_error_code(self):
        assert get_error_code(ForbiddenError("x")) == "FORBIDDEN"
        assert get_error_code(KeyError("x")) == "KEYERROR"
