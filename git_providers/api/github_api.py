"""
GitHub REST Adapter
===================

GitHub REST API v3 transport (github.com and GitHub Enterprise Server).
"""

from __future__ import annotations

import asyncio
import logging

from ..protocol import (
    Comment,
    CreateRequest,
    GeneralComment,
    InlineComment,
    MergeRequestInfo,
    MergeRequestState,
    RepoIdentifier,
    ServiceTag,
    sort_comments,
)
from .base import ApiAdapter
from .models import (
    GitHubCreatePull,
    GitHubIssueComment,
    GitHubPullRequest,
    GitHubReviewComment,
    GitHubUser,
)

logger = logging.getLogger(__name__)

PER_PAGE = 100


def _state(pr: GitHubPullRequest) -> MergeRequestState:
    if pr.merged or pr.merged_at is not None:
        return MergeRequestState.MERGED
    if pr.state == "open":
        return MergeRequestState.OPEN
    if pr.state == "closed":
        return MergeRequestState.CLOSED
    return MergeRequestState.UNKNOWN


def _to_info(pr: GitHubPullRequest) -> MergeRequestInfo:
    return MergeRequestInfo(
        number=pr.number,
        url=pr.html_url,
        title=pr.title,
        state=_state(pr),
        merged_at=pr.merged_at,
        merge_commit_sha=pr.merge_commit_sha if pr.merged_at is not None else None,
    )


class GitHubApi(ApiAdapter):
    """REST transport for GitHub pull requests."""

    service = ServiceTag.GITHUB

    async def check_auth(self) -> str:
        data = await self.client.request("GET", "/user", operation="check_auth")
        return self._parse(GitHubUser, data, "check_auth").login

    async def create_merge_request(self, req: CreateRequest) -> MergeRequestInfo:
        body = GitHubCreatePull(
            title=req.title,
            head=req.source_branch,
            base=req.target_branch,
            body=req.description,
            draft=req.is_draft,
        )
        data = await self.client.request(
            "POST",
            f"/repos/{req.repo.full_path}/pulls",
            json_body=body.model_dump(),
            operation="create_merge_request",
        )
        return _to_info(self._parse(GitHubPullRequest, data, "create_merge_request"))

    async def list_for_branch(
        self, repo: RepoIdentifier, branch: str
    ) -> list[MergeRequestInfo]:
        data = await self.client.request(
            "GET",
            f"/repos/{repo.full_path}/pulls",
            params={
                "head": f"{repo.owner_path[0]}:{branch}",
                "state": "all",
                "per_page": PER_PAGE,
            },
            operation="list_for_branch",
        )
        pulls = self._parse_list(GitHubPullRequest, data, "list_for_branch")
        return [_to_info(pr) for pr in pulls]

    async def get_merge_request(
        self, repo: RepoIdentifier, number: int
    ) -> MergeRequestInfo:
        data = await self.client.request(
            "GET",
            f"/repos/{repo.full_path}/pulls/{number}",
            operation="get_merge_request",
        )
        return _to_info(self._parse(GitHubPullRequest, data, "get_merge_request"))

    async def get_comments(self, repo: RepoIdentifier, number: int) -> list[Comment]:
        params = {"per_page": PER_PAGE}
        issue_data, review_data = await asyncio.gather(
            self.client.request(
                "GET",
                f"/repos/{repo.full_path}/issues/{number}/comments",
                params=params,
                operation="get_comments",
            ),
            self.client.request(
                "GET",
                f"/repos/{repo.full_path}/pulls/{number}/comments",
                params=params,
                operation="get_comments",
            ),
        )

        comments: list[Comment] = [
            GeneralComment(
                id=str(c.id),
                author=c.user.login if c.user else "",
                body=c.body or "",
                created_at=c.created_at,
                url=c.html_url,
                author_association=c.author_association,
            )
            for c in self._parse_list(GitHubIssueComment, issue_data, "get_comments")
        ]
        comments.extend(
            InlineComment(
                id=str(c.id),
                author=c.user.login if c.user else "",
                body=c.body or "",
                created_at=c.created_at,
                url=c.html_url,
                file_path=c.path,
                line=c.line if c.line is not None else c.original_line,
                diff_context=c.diff_hunk,
                author_association=c.author_association,
            )
            for c in self._parse_list(GitHubReviewComment, review_data, "get_comments")
        )
        return sort_comments(comments)
