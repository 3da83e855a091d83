"""
GitLab CLI Adapter
==================

Drives the ``glab`` command-line tool for GitLab merge requests.

Self-managed instances are selected with ``GITLAB_HOST``. Comment retrieval
is left to the REST API.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ..core.exceptions import (
    NotAuthenticatedError,
    NotInstalledError,
    ParseError,
    ProviderError,
)
from ..protocol import (
    CreateRequest,
    MergeRequestInfo,
    MergeRequestState,
    RepoIdentifier,
    ServiceTag,
)
from .base import CliAdapter, parse_timestamp

logger = logging.getLogger(__name__)

DRAFT_PREFIX = "Draft: "

# Prefixes GitLab itself treats as draft markers
_DRAFT_MARKER = re.compile(r"^\s*(?:\[draft\]|\(draft\)|draft:|draft\s+-)\s*", re.IGNORECASE)

_STATE_MAP = {
    "opened": MergeRequestState.OPEN,
    "merged": MergeRequestState.MERGED,
    "closed": MergeRequestState.CLOSED,
    "locked": MergeRequestState.CLOSED,
}


def is_draft_title(title: str) -> bool:
    return bool(_DRAFT_MARKER.match(title))


def strip_draft_marker(title: str) -> str:
    return _DRAFT_MARKER.sub("", title, count=1)


class GlabCli(CliAdapter):
    """Command-line transport for GitLab."""

    service = ServiceTag.GITLAB
    tool = "glab"
    host_env_var = "GITLAB_HOST"

    def _repo_arg(self, repo: RepoIdentifier) -> str:
        if repo.host:
            return f"https://{repo.host}/{repo.full_path}"
        return repo.full_path

    async def check_auth(self) -> None:
        args = ["auth", "status"]
        if self.host:
            args += ["--hostname", self.host]
        try:
            await self._run(args, "check_auth")
        except (NotInstalledError, NotAuthenticatedError):
            raise
        except ProviderError as e:
            raise NotAuthenticatedError(
                f"glab is not authenticated: {e}",
                context=self._context("check_auth"),
                cause=e,
            ) from e

    async def create_merge_request(self, req: CreateRequest) -> MergeRequestInfo:
        args = [
            "mr",
            "create",
            "--repo",
            self._repo_arg(req.repo),
            "--source-branch",
            req.source_branch,
            "--target-branch",
            req.target_branch,
            "--title",
            req.title,
            "--description",
            req.description or "",
            "--yes",
        ]
        if req.is_draft and not is_draft_title(req.title):
            args.append("--draft")

        raw = await self._run(args, "create_merge_request")
        number, url = self._find_url(raw, "/merge_requests/", "create_merge_request")
        return MergeRequestInfo(
            number=number,
            url=url,
            title=req.title,
            state=MergeRequestState.OPEN,
        )

    async def list_for_branch(
        self, repo: RepoIdentifier, branch: str
    ) -> list[MergeRequestInfo]:
        raw = await self._run(
            [
                "mr",
                "list",
                "--repo",
                self._repo_arg(repo),
                "--source-branch",
                branch,
                "--all",
                "--per-page",
                "100",
                "--output",
                "json",
            ],
            "list_for_branch",
        )
        items = self._parse_json_list(raw, "list_for_branch")
        return [self._to_info(item, "list_for_branch") for item in items]

    async def get_merge_request(
        self, repo: RepoIdentifier, number: int
    ) -> MergeRequestInfo:
        raw = await self._run(
            [
                "mr",
                "view",
                str(number),
                "--repo",
                self._repo_arg(repo),
                "--output",
                "json",
            ],
            "get_merge_request",
        )
        return self._to_info(self._parse_json(raw, "get_merge_request"), "get_merge_request")

    def _to_info(self, item: Any, operation: str) -> MergeRequestInfo:
        if not isinstance(item, dict) or "iid" not in item or "web_url" not in item:
            raise ParseError(
                f"glab {operation} response missing required fields",
                context=self._context(operation),
            )
        try:
            return MergeRequestInfo(
                number=int(item["iid"]),
                url=item["web_url"],
                title=item.get("title") or "",
                state=_STATE_MAP.get(
                    str(item.get("state", "opened")).lower(), MergeRequestState.UNKNOWN
                ),
                merged_at=parse_timestamp(item.get("merged_at")),
                merge_commit_sha=item.get("merge_commit_sha"),
            )
        except (TypeError, ValueError) as e:
            raise self._malformed(operation, item, e) from e

