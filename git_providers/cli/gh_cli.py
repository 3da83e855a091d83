"""
GitHub CLI Adapter
==================

Drives the ``gh`` command-line tool for GitHub pull requests.

Self-managed (GitHub Enterprise Server) hosts are selected with ``GH_HOST``
and a ``HOST/OWNER/REPO`` repository argument.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..core.exceptions import (
    NotAuthenticatedError,
    NotInstalledError,
    ParseError,
    ProviderError,
)
from ..protocol import (
    Comment,
    CreateRequest,
    GeneralComment,
    InlineComment,
    MergeRequestInfo,
    MergeRequestState,
    RepoIdentifier,
    ServiceTag,
)
from .base import CliAdapter, parse_timestamp

logger = logging.getLogger(__name__)

_PR_FIELDS = "number,url,title,state,mergedAt,mergeCommit"

_STATE_MAP = {
    "OPEN": MergeRequestState.OPEN,
    "MERGED": MergeRequestState.MERGED,
    "CLOSED": MergeRequestState.CLOSED,
}


class GhCli(CliAdapter):
    """Command-line transport for GitHub."""

    service = ServiceTag.GITHUB
    tool = "gh"
    host_env_var = "GH_HOST"

    def _repo_arg(self, repo: RepoIdentifier) -> str:
        if repo.host:
            return f"{repo.host}/{repo.full_path}"
        return repo.full_path

    async def check_auth(self) -> None:
        args = ["auth", "status", "--hostname", self.host or self.service.public_host]
        try:
            await self._run(args, "check_auth")
        except (NotInstalledError, NotAuthenticatedError):
            raise
        except ProviderError as e:
            # Any other failure of `gh auth status` means no usable session
            raise NotAuthenticatedError(
                f"gh is not authenticated: {e}",
                context=self._context("check_auth"),
                cause=e,
            ) from e

    async def create_merge_request(self, req: CreateRequest) -> MergeRequestInfo:
        args = [
            "pr",
            "create",
            "--repo",
            self._repo_arg(req.repo),
            "--head",
            req.source_branch,
            "--base",
            req.target_branch,
            "--title",
            req.title,
            "--body",
            req.description or "",
        ]
        if req.is_draft:
            args.append("--draft")

        raw = await self._run(args, "create_merge_request")
        number, url = self._find_url(raw, "/pull/", "create_merge_request")
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
                "pr",
                "list",
                "--repo",
                self._repo_arg(repo),
                "--head",
                branch,
                "--state",
                "all",
                "--limit",
                "100",
                "--json",
                _PR_FIELDS,
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
                "pr",
                "view",
                str(number),
                "--repo",
                self._repo_arg(repo),
                "--json",
                _PR_FIELDS,
            ],
            "get_merge_request",
        )
        return self._to_info(self._parse_json(raw, "get_merge_request"), "get_merge_request")

    async def get_comments(self, repo: RepoIdentifier, number: int) -> list[Comment]:
        base = f"repos/{repo.full_path}"
        general_raw, review_raw = await asyncio.gather(
            self._api(f"{base}/issues/{number}/comments?per_page=100", "get_comments"),
            self._api(f"{base}/pulls/{number}/comments?per_page=100", "get_comments"),
        )

        comments: list[Comment] = []
        try:
            for item in self._parse_json_objects(general_raw, "get_comments"):
                comments.append(
                    GeneralComment(
                        id=str(item.get("id", "")),
                        author=(item.get("user") or {}).get("login", ""),
                        body=item.get("body") or "",
                        created_at=self._timestamp(item, "get_comments"),
                        url=item.get("html_url", ""),
                        author_association=item.get("author_association", ""),
                    )
                )
            for item in self._parse_json_objects(review_raw, "get_comments"):
                line = item.get("line") or item.get("original_line")
                comments.append(
                    InlineComment(
                        id=str(item.get("id", "")),
                        author=(item.get("user") or {}).get("login", ""),
                        body=item.get("body") or "",
                        created_at=self._timestamp(item, "get_comments"),
                        url=item.get("html_url", ""),
                        file_path=item.get("path", ""),
                        line=int(line) if line is not None else None,
                        diff_context=item.get("diff_hunk") or "",
                        author_association=item.get("author_association", ""),
                    )
                )
        except (TypeError, ValueError, AttributeError) as e:
            raise self._malformed("get_comments", item, e) from e
        return comments

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _api(self, endpoint: str, operation: str) -> str:
        args = ["api", endpoint]
        if self.host:
            args += ["--hostname", self.host]
        return await self._run(args, operation)

    def _timestamp(self, item: dict[str, Any], operation: str):
        created_at = parse_timestamp(item.get("created_at"))
        if created_at is None:
            raise ParseError(
                f"gh comment {item.get('id')} has no valid created_at",
                context=self._context(operation),
            )
        return created_at

    def _to_info(self, item: Any, operation: str) -> MergeRequestInfo:
        if not isinstance(item, dict) or "number" not in item or "url" not in item:
            raise ParseError(
                f"gh {operation} response missing required fields",
                context=self._context(operation),
            )
        merge_commit = item.get("mergeCommit") or {}
        try:
            return MergeRequestInfo(
                number=int(item["number"]),
                url=item["url"],
                title=item.get("title") or "",
                state=_STATE_MAP.get(
                    str(item.get("state", "")).upper(), MergeRequestState.UNKNOWN
                ),
                merged_at=parse_timestamp(item.get("mergedAt")),
                merge_commit_sha=merge_commit.get("oid") if isinstance(merge_commit, dict) else None,
            )
        except (TypeError, ValueError) as e:
            raise self._malformed(operation, item, e) from e

