"""
REST Adapter Base
=================

Common surface of the GitHub and GitLab REST adapters.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.exceptions import ErrorContext, ParseError
from ..protocol import (
    Comment,
    CreateRequest,
    MergeRequestInfo,
    MergeRequestState,
    RepoIdentifier,
    ServiceTag,
    Transport,
)
from .client import RestClient

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ApiAdapter(ABC):
    """Base class for REST transports; ``client`` does the HTTP work."""

    service: ServiceTag
    transport = Transport.API

    def __init__(self, client: RestClient):
        self.client = client

    @abstractmethod
    async def check_auth(self) -> str:
        """Verify the token and return the authenticated username."""

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

    @abstractmethod
    async def get_comments(self, repo: RepoIdentifier, number: int) -> list[Comment]:
        """Fetch general and inline comments, oldest first."""

    async def get_status(self, repo: RepoIdentifier, number: int) -> MergeRequestState:
        info = await self.get_merge_request(repo, number)
        return info.state

    def _context(self, operation: str) -> ErrorContext:
        return ErrorContext(
            operation=operation,
            service=self.service.value,
            transport=self.transport.value,
        )

    def _parse(self, model: type[ModelT], data: Any, operation: str) -> ModelT:
        """Validate one payload, raising ParseError on mismatch."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ParseError(
                f"unexpected {self.service.display_name} {model.__name__} payload "
                f"({e.error_count()} errors)",
                context=self._context(operation),
                cause=e,
            ) from e

    def _parse_list(self, model: type[ModelT], data: Any, operation: str) -> list[ModelT]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise ParseError(
                f"expected a {self.service.display_name} {model.__name__} array",
                context=self._context(operation),
            )
        return [self._parse(model, item, operation) for item in data]
