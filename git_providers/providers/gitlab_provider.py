"""
GitLab Provider
===============

Merge requests on gitlab.com and self-managed GitLab, via ``glab`` with the
REST API as fallback.

GitLab marks drafts by title: a request is a draft while its title starts
with ``Draft:``. Encoding adds the prefix once; stripping removes it.
"""

from __future__ import annotations

import dataclasses

from ..cli.glab_cli import DRAFT_PREFIX, is_draft_title, strip_draft_marker
from ..protocol import CreateRequest, ServiceTag
from .base import BaseGitProvider


class GitLabProvider(BaseGitProvider):
    service = ServiceTag.GITLAB

    def encode_draft(self, req: CreateRequest) -> CreateRequest:
        if not req.is_draft or is_draft_title(req.title):
            return req
        return dataclasses.replace(req, title=f"{DRAFT_PREFIX}{req.title}")

    def strip_draft(self, title: str) -> str:
        return strip_draft_marker(title)
