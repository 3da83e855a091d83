"""
Git Providers
=============

Unified access to merge requests on GitHub and GitLab (public and
self-managed), through each service's command-line tool with the REST API
as fallback.

Usage:
    from git_providers import CreateRequest, create_provider

    provider = create_provider("git@gitlab.com:team/sub/project.git")
    info = await provider.create_merge_request(
        CreateRequest(
            title="Add feature",
            source_branch="feature",
            target_branch="main",
            repo=provider.repo,
            is_draft=True,
        )
    )
"""

from .core.config import ProviderSettings
from .core.exceptions import (
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
)
from .core.logging import configure_logging, log_context
from .detection import (
    detect_repository,
    detect_service,
    get_remote_url,
    parse_remote_url,
)
from .factory import (
    create_provider,
    create_provider_by_type,
    create_provider_for_path,
    list_supported_services,
)
from .protocol import (
    AuthStatus,
    Comment,
    CreateRequest,
    GeneralComment,
    GitProvider,
    InlineComment,
    MergeRequestInfo,
    MergeRequestState,
    RepoIdentifier,
    ServiceTag,
    ServiceTerminology,
    Transport,
    sort_comments,
)
from .providers import BaseGitProvider, GitHubProvider, GitLabProvider

__version__ = "1.0.0"

__all__ = [
    # Factory
    "create_provider",
    "create_provider_by_type",
    "create_provider_for_path",
    "list_supported_services",
    # Detection
    "detect_repository",
    "detect_service",
    "get_remote_url",
    "parse_remote_url",
    # Data model
    "AuthStatus",
    "Comment",
    "CreateRequest",
    "GeneralComment",
    "GitProvider",
    "InlineComment",
    "MergeRequestInfo",
    "MergeRequestState",
    "RepoIdentifier",
    "ServiceTag",
    "ServiceTerminology",
    "Transport",
    "sort_comments",
    # Providers
    "BaseGitProvider",
    "GitHubProvider",
    "GitLabProvider",
    # Configuration / logging
    "ProviderSettings",
    "configure_logging",
    "log_context",
    # Errors
    "ErrorContext",
    "ErrorKind",
    "ForbiddenError",
    "InvalidRequestError",
    "NotAuthenticatedError",
    "NotFoundError",
    "NotInstalledError",
    "NotSupportedByTransportError",
    "ParseError",
    "ProviderError",
    "RateLimitedError",
    "TransientError",
]
