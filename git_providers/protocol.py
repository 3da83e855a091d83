"""
Git Provider Protocol
=====================

Provider-agnostic data model and the interface every provider implements.

Whatever transport produced them (command-line tool or REST API), callers
only ever see these types. Internally the package always speaks of "merge
requests"; ``ServiceTerminology`` gives presentation layers the wording each
service uses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol, Union, runtime_checkable

from .core.exceptions import ErrorKind


@dataclass(frozen=True)
class ServiceTerminology:
    """Service-appropriate wording for UIs."""

    request: str
    request_short: str
    cli_name: str
    cli_command: str


class ServiceTag(str, Enum):
    """Supported git hosting services."""

    GITHUB = "github"
    GITLAB = "gitlab"

    @property
    def display_name(self) -> str:
        return _SERVICE_INFO[self][0]

    @property
    def public_host(self) -> str:
        """Hostname of the vendor's public instance."""
        return _SERVICE_INFO[self][1]

    @property
    def cli_command(self) -> str:
        return self.terminology.cli_command

    @property
    def terminology(self) -> ServiceTerminology:
        return _SERVICE_INFO[self][2]


_SERVICE_INFO: dict[ServiceTag, tuple[str, str, ServiceTerminology]] = {
    ServiceTag.GITHUB: (
        "GitHub",
        "github.com",
        ServiceTerminology(
            request="Pull Request",
            request_short="PR",
            cli_name="GitHub CLI",
            cli_command="gh",
        ),
    ),
    ServiceTag.GITLAB: (
        "GitLab",
        "gitlab.com",
        ServiceTerminology(
            request="Merge Request",
            request_short="MR",
            cli_name="GitLab CLI",
            cli_command="glab",
        ),
    ),
}


class Transport(str, Enum):
    """The two ways a provider can reach its service."""

    CLI = "cli"
    API = "api"


@dataclass(frozen=True)
class RepoIdentifier:
    """
    A repository on a hosting service.

    ``owner_path`` holds one or more namespace segments (GitLab groups nest:
    ``("org", "team", "sub")``). ``host`` is None for the public instance and
    the hostname for self-managed deployments.

    Built by ``detection.parse_remote_url``; callers should not need to
    construct one by hand.
    """

    owner_path: tuple[str, ...]
    name: str
    service: ServiceTag
    host: str | None = None

    def __post_init__(self):
        if not self.owner_path or not all(self.owner_path):
            raise ValueError("owner_path must contain at least one non-empty segment")
        if not self.name:
            raise ValueError("name must not be empty")
        # Accept lists from callers but keep the identifier hashable
        if not isinstance(self.owner_path, tuple):
            object.__setattr__(self, "owner_path", tuple(self.owner_path))

    @property
    def owner(self) -> str:
        """Owner (GitHub) or group/namespace path (GitLab)."""
        return "/".join(self.owner_path)

    @property
    def full_path(self) -> str:
        """Path in owner/name format."""
        return f"{self.owner}/{self.name}"

    @property
    def web_host(self) -> str:
        """Host serving the repository (public host when ``host`` is None)."""
        return self.host or self.service.public_host

    @property
    def is_self_managed(self) -> bool:
        return self.host is not None


class MergeRequestState(str, Enum):
    """Unified merge request state."""

    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MergeRequestInfo:
    """
    A merge/pull request.

    ``number`` is scoped to its service and repository; never compare it
    across services.
    """

    number: int
    url: str
    title: str
    state: MergeRequestState
    merged_at: datetime | None = None
    merge_commit_sha: str | None = None


@dataclass(frozen=True)
class GeneralComment:
    """Conversation comment on a merge request."""

    id: str
    author: str
    body: str
    created_at: datetime
    url: str
    author_association: str = ""


@dataclass(frozen=True)
class InlineComment:
    """Review comment attached to a line of the diff."""

    id: str
    author: str
    body: str
    created_at: datetime
    url: str
    file_path: str
    line: int | None = None
    diff_context: str = ""
    author_association: str = ""


Comment = Union[GeneralComment, InlineComment]


def sort_comments(comments: list[Comment]) -> list[Comment]:
    """Order comments by creation time, oldest first."""
    return sorted(comments, key=lambda c: c.created_at)


@dataclass(frozen=True)
class CreateRequest:
    """Caller-supplied fields for a new merge request."""

    title: str
    source_branch: str
    target_branch: str
    repo: RepoIdentifier
    description: str = ""
    is_draft: bool = False


@dataclass(frozen=True)
class AuthStatus:
    """Outcome of an authentication check."""

    authenticated: bool
    transport: Transport | None = None
    error_kind: ErrorKind | None = None
    detail: str = ""


@runtime_checkable
class GitProvider(Protocol):
    """
    Unified interface implemented by one provider per hosting service.

    Every method raises a ``core.exceptions.ProviderError`` subclass on
    failure.
    """

    @property
    def service(self) -> ServiceTag: ...

    @property
    def repo(self) -> RepoIdentifier: ...

    async def check_auth(self) -> AuthStatus: ...

    async def create_merge_request(self, req: CreateRequest) -> MergeRequestInfo: ...

    async def list_for_branch(self, branch: str) -> list[MergeRequestInfo]: ...

    async def get_status(self, number: int) -> MergeRequestState: ...

    async def get_comments(self, number: int) -> list[Comment]: ...
