"""
GitHub Provider
===============

Pull requests on github.com and GitHub Enterprise Server, via ``gh`` with
the REST API as fallback. Drafts use GitHub's native draft flag, so titles
pass through unchanged.
"""

from __future__ import annotations

from ..protocol import ServiceTag
from .base import BaseGitProvider


class GitHubProvider(BaseGitProvider):
    service = ServiceTag.GITHUB
