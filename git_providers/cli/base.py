"""
Command-Line Adapter Base
=========================

Shared plumbing for adapters that drive a hosting service's command-line
tool (``gh``, ``glab``): running the tool, recognizing its failure output,
and decoding its JSON. Each service subclass only knows its own arguments
and output format; nothing service-specific leaks past the adapter.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from ..core.exceptions import (
    ErrorContext,
    ForbiddenError,
    InvalidRequestError,
    NotAuthenticatedError,
    NotFoundError,
    NotSupportedByTransportError,
    ParseError,
    RateLimitedError,
    TransientError,
)
from ..core.safe_subprocess import AsyncCommandRunner, CommandRunner
from ..protocol import (
    Comment,
    CreateRequest,
    MergeRequestInfo,
    MergeRequestState,
    RepoIdentifier,
    ServiceTag,
    Transport,
)

logger = logging.getLogger(__name__)

# stderr fragments (lowercase) that identify a failure category
AUTH_PATTERNS = (
    "authentication failed",
    "authentication required",
    "unauthorized",
    "bad credentials",
    "auth login",
    "not logged in",
    "not logged into",
    "token is invalid",
)
FORBIDDEN_PATTERNS = (
    "permission denied",
    "must have push access",
    "insufficient permission",
    "does not have permission",
)
NOT_FOUND_PATTERNS = (
    "not found",
    "could not resolve to",
    "no pull requests found",
    "no merge requests",
)
INVALID_PATTERNS = (
    "already exists",
    "no commits between",
    "validation failed",
    "is not a valid",
    "invalid value",
    "must be different",
    "unprocessable",
)
RATE_LIMIT_PATTERNS = (
    "rate limit",
    "too many requests",
)

# HTTP status codes as gh and glab print them: "HTTP 404", "status 401",
# "...: 401" at the end of an API error, "404 Not Found". A number inside a
# branch name or a merge request number never matches.
_HTTP_STATUS = re.compile(
    r"(?:\bhttp\s+|\bstatus(?:\s+code)?\W*|:\s+)(\d{3})\b"
    r"|\b(\d{3})\s+(?:unauthorized|forbidden|not found|conflict|unprocessable|too many requests)"
)

AUTH_STATUSES = {401}
FORBIDDEN_STATUSES = {403}
NOT_FOUND_STATUSES = {404}
INVALID_STATUSES = {400, 409, 422}
RATE_LIMIT_STATUSES = {429}


def http_statuses(text: str) -> set[int]:
    """Extract the HTTP status codes reported in a tool's error output."""
    return {int(code or phrase_code) for code, phrase_code in _HTTP_STATUS.findall(text)}



def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp as emitted by gh, glab and both APIs."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class CliAdapter(ABC):
    """
    Base class for command-line transports.

    Subclasses set ``service`` and ``tool`` and implement the operations.
    ``host`` is the self-managed hostname (None for the public instance).
    """

    service: ServiceTag
    tool: str
    host_env_var: str = ""
    transport = Transport.CLI

    def __init__(
        self,
        host: str | None = None,
        runner: CommandRunner | None = None,
        timeout: float = 60.0,
    ):
        self.host = host
        self.runner = runner or AsyncCommandRunner()
        self.timeout = timeout

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    @abstractmethod
    async def check_auth(self) -> None:
        """Raise unless the tool has an authenticated session."""

    @abstractmethod
    async def create_merge_request(self, req: CreateRequest) -> MergeRequestInfo:
        """Open a merge request; the title is used verbatim."""

    @abstractmethod
    async def list_for_branch(
        self, repo: RepoIdentifier, branch: str
    ) -> list[MergeRequestInfo]:
        """List merge requests (any state) whose source is ``branch``."""

    @abstractmethod
    async def get_merge_request(
        self, repo: RepoIdentifier, number: int
    ) -> MergeRequestInfo:
        """Fetch one merge request."""

    async def get_status(self, repo: RepoIdentifier, number: int) -> MergeRequestState:
        info = await self.get_merge_request(repo, number)
        return info.state

    async def get_comments(self, repo: RepoIdentifier, number: int) -> list[Comment]:
        raise NotSupportedByTransportError(
            f"listing comments via {self.tool}",
            context=self._context("get_comments"),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _context(self, operation: str) -> ErrorContext:
        return ErrorContext(
            operation=operation,
            service=self.service.value,
            transport=self.transport.value,
        )

    def _env(self) -> dict[str, str] | None:
        if self.host and self.host_env_var:
            return {self.host_env_var: self.host}
        return None

    async def _run(self, args: Sequence[str], operation: str) -> str:
        """
        Run the tool and return stdout.

        Raises:
            NotInstalledError: If the tool is missing
            ProviderError: Mapped from the tool's stderr on non-zero exit
        """
        command = [self.tool, *args]
        result = await self.runner.run(command, env=self._env(), timeout=self.timeout)

        if result.ok:
            logger.debug(f"{self.tool} {operation} succeeded")
            return result.stdout

        stderr = result.stderr.strip() or result.stdout.strip()
        logger.debug(
            f"{self.tool} {operation} exited with {result.returncode}: {stderr[:200]}"
        )
        raise self._classify_failure(stderr, operation)

    def _classify_failure(self, stderr: str, operation: str):
        """Map a failed command's output onto the error taxonomy."""
        context = self._context(operation)
        lower = stderr.lower()
        statuses = http_statuses(lower)
        detail = stderr or f"{self.tool} exited with an error"

        def matches(patterns: tuple[str, ...], codes: set[int]) -> bool:
            return bool(statuses & codes) or any(p in lower for p in patterns)

        if matches(AUTH_PATTERNS, AUTH_STATUSES):
            return NotAuthenticatedError(f"{self.tool}: {detail}", context)
        if matches(RATE_LIMIT_PATTERNS, RATE_LIMIT_STATUSES):
            return RateLimitedError(f"{self.tool}: {detail}", context=context)
        if matches(FORBIDDEN_PATTERNS, FORBIDDEN_STATUSES):
            return ForbiddenError(f"{self.tool}: {detail}", context)
        if matches(NOT_FOUND_PATTERNS, NOT_FOUND_STATUSES):
            return NotFoundError(f"{self.tool}: {detail}", context)
        if matches(INVALID_PATTERNS, INVALID_STATUSES):
            return InvalidRequestError(detail, context)
        return TransientError(f"{self.tool} failed: {detail}", context)

    def _parse_json(self, raw: str, operation: str) -> Any:
        try:
            return json.loads(raw.strip())
        except ValueError as e:
            raise ParseError(
                f"{self.tool} {operation} returned invalid JSON: {raw[:200]!r}",
                context=self._context(operation),
                cause=e,
            ) from e

    def _parse_json_list(self, raw: str, operation: str) -> list[Any]:
        if not raw.strip():
            return []
        value = self._parse_json(raw, operation)
        if not isinstance(value, list):
            raise ParseError(
                f"{self.tool} {operation} response is not an array",
                context=self._context(operation),
            )
        return value

    def _malformed(self, operation: str, item: Any, cause: Exception | None = None) -> ParseError:
        return ParseError(
            f"{self.tool} {operation} returned a malformed entry: {str(item)[:200]!r}",
            context=self._context(operation),
            cause=cause,
        )

    def _parse_json_objects(self, raw: str, operation: str) -> list[dict[str, Any]]:
        items = self._parse_json_list(raw, operation)
        for item in items:
            if not isinstance(item, dict):
                raise self._malformed(operation, item)
        return items

    def _find_url(self, raw: str, marker: str, operation: str) -> tuple[int, str]:
        """
        Find the first URL containing ``marker`` followed by a number.

        Returns:
            (number, url)
        """
        for token in raw.split():
            token = token.strip("()<>.,;'\"")
            if not token.startswith("http") or marker not in token:
                continue
            tail = token.rsplit(marker, 1)[1].split("/", 1)[0].split("#", 1)[0]
            if tail.isdigit():
                return int(tail), token
        raise ParseError(
            f"{self.tool} {operation} did not print a {marker.strip('/')} URL: "
            f"{raw[:200]!r}",
            context=self._context(operation),
        )
