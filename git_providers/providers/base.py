"""
Base Git Provider
=================

Implements the unified provider contract on top of two transports: the
service's command-line tool and its REST API.

Dispatch, applied independently to every call:
1. Try the CLI adapter (skipped when the provider has none).
2. If it reports NotInstalled, NotAuthenticated or NotSupportedByTransport,
   repeat the same logical request on the REST adapter.
3. Any other CLI error propagates untouched. A REST failure after a
   fallback is raised chained from the CLI error.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar, Union

from ..api.base import ApiAdapter
from ..cli.base import CliAdapter
from ..core.exceptions import (
    ErrorContext,
    InvalidRequestError,
    ProviderError,
    allows_fallback,
    get_error_code,
)
from ..core.logging import log_context
from ..protocol import (
    AuthStatus,
    Comment,
    CreateRequest,
    MergeRequestInfo,
    MergeRequestState,
    RepoIdentifier,
    ServiceTag,
    sort_comments,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Adapter = Union[CliAdapter, ApiAdapter]


class BaseGitProvider:
    """
    Provider for one repository on one hosting service.

    Subclasses pin ``service`` and implement the draft convention.
    """

    service: ServiceTag

    def __init__(
        self,
        repo: RepoIdentifier,
        api: ApiAdapter,
        cli: CliAdapter | None = None,
    ):
        if repo.service is not self.service:
            raise ValueError(
                f"{type(self).__name__} cannot serve a {repo.service.display_name} repository"
            )
        self._repo = repo
        self.api = api
        self.cli = cli

    @property
    def repo(self) -> RepoIdentifier:
        return self._repo

    def __repr__(self) -> str:
        transports = "cli+api" if self.cli is not None else "api"
        return f"{type(self).__name__}({self._repo.full_path!r}, {transports})"

    # -------------------------------------------------------------------------
    # Draft convention
    # -------------------------------------------------------------------------

    def encode_draft(self, req: CreateRequest) -> CreateRequest:
        """Express ``is_draft`` the way the service expects it."""
        return req

    def strip_draft(self, title: str) -> str:
        """Recover the caller's title from a service title."""
        return title

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def check_auth(self) -> AuthStatus:
        """
        Verify that some transport is authenticated.

        Returns:
            AuthStatus naming the transport that succeeded

        Raises:
            ProviderError: When no transport is usable
        """

        async def check(transport: Adapter) -> AuthStatus:
            await transport.check_auth()
            return AuthStatus(authenticated=True, transport=transport.transport)

        return await self._dispatch("check_auth", check)

    async def auth_status(self) -> AuthStatus:
        """Like ``check_auth`` but reports failure in the result."""
        try:
            return await self.check_auth()
        except ProviderError as e:
            return AuthStatus(
                authenticated=False,
                error_kind=e.kind,
                detail=e.user_action,
            )

    async def create_merge_request(self, req: CreateRequest) -> MergeRequestInfo:
        """
        Open a merge request.

        The returned title is the service's title; draft markers can be
        removed with ``strip_draft``.

        Raises:
            InvalidRequestError: If the request fails validation
        """
        self._validate(req)
        encoded = self.encode_draft(req)
        logger.info(
            f"Creating {self.service.terminology.request_short} "
            f"{req.source_branch} -> {req.target_branch}"
            f"{' (draft)' if req.is_draft else ''}"
        )
        return await self._dispatch(
            "create_merge_request",
            lambda transport: transport.create_merge_request(encoded),
        )

    async def list_for_branch(self, branch: str) -> list[MergeRequestInfo]:
        if not branch or not branch.strip():
            raise InvalidRequestError(
                "branch must not be empty", context=self._context("list_for_branch")
            )
        return await self._dispatch(
            "list_for_branch",
            lambda transport: transport.list_for_branch(self._repo, branch),
        )

    async def get_merge_request(self, number: int) -> MergeRequestInfo:
        self._validate_number(number, "get_merge_request")
        return await self._dispatch(
            "get_merge_request",
            lambda transport: transport.get_merge_request(self._repo, number),
        )

    async def get_status(self, number: int) -> MergeRequestState:
        self._validate_number(number, "get_status")
        return await self._dispatch(
            "get_status",
            lambda transport: transport.get_status(self._repo, number),
        )

    async def get_comments(self, number: int) -> list[Comment]:
        """Fetch general and inline comments, oldest first."""
        self._validate_number(number, "get_comments")
        comments = await self._dispatch(
            "get_comments",
            lambda transport: transport.get_comments(self._repo, number),
        )
        return sort_comments(comments)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def _dispatch(
        self,
        operation: str,
        call: Callable[[Adapter], Awaitable[T]],
    ) -> T:
        with log_context(service=self.service.value, operation=operation):
            cli_error: ProviderError | None = None

            if self.cli is not None:
                try:
                    return await call(self.cli)
                except ProviderError as e:
                    if not allows_fallback(e):
                        raise
                    cli_error = e
                    logger.info(
                        f"{self.cli.tool} unavailable for {operation} "
                        f"({e.kind.value}), falling back to REST API",
                        extra={"error_code": get_error_code(e), "transport": "cli"},
                    )

            try:
                return await call(self.api)
            except ProviderError as e:
                if cli_error is not None:
                    raise e from cli_error
                raise

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _context(self, operation: str) -> ErrorContext:
        return ErrorContext(operation=operation, service=self.service.value)

    def _validate(self, req: CreateRequest) -> None:
        context = self._context("create_merge_request")
        if not req.title or not req.title.strip():
            raise InvalidRequestError("title must not be empty", context)
        if not req.source_branch or not req.source_branch.strip():
            raise InvalidRequestError("source branch must not be empty", context)
        if not req.target_branch or not req.target_branch.strip():
            raise InvalidRequestError("target branch must not be empty", context)
        if req.source_branch == req.target_branch:
            raise InvalidRequestError(
                f"source and target branch are both {req.source_branch!r}", context
            )
        if req.repo.service is not self.service:
            raise InvalidRequestError(
                f"repository is on {req.repo.service.display_name}, "
                f"provider serves {self.service.display_name}",
                context,
            )

    def _validate_number(self, number: int, operation: str) -> None:
        if isinstance(number, bool) or not isinstance(number, int) or number < 1:
            raise InvalidRequestError(
                f"merge request number must be a positive integer, got {number!r}",
                self._context(operation),
            )
