"""
Git Providers
=============

One provider per hosting service, each combining a CLI transport with a
REST fallback.
"""

from .base import BaseGitProvider
from .github_provider import GitHubProvider
from .gitlab_provider import DRAFT_PREFIX, GitLabProvider, is_draft_title

__all__ = [
    "BaseGitProvider",
    "DRAFT_PREFIX",
    "GitHubProvider",
    "GitLabProvider",
    "is_draft_title",
]
