"""
GitLab REST Adapter
===================

GitLab REST API v4 transport (gitlab.com and self-managed instances).

Merge request endpoints are keyed by numeric project id, so path-based
operations resolve the project first with one extra request.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

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
    GitLabCreateMergeRequest,
    GitLabMergeRequest,
    GitLabNote,
    GitLabProject,
    GitLabUser,
)

logger = logging.getLogger(__name__)

PER_PAGE = 100

_STATE_MAP = {
    "opened": MergeRequestState.OPEN,
    "merged": MergeRequestState.MERGED,
    "closed": MergeRequestState.CLOSED,
    "locked": MergeRequestState.CLOSED,
}


def _to_info(mr: GitLabMergeRequest) -> MergeRequestInfo:
    return MergeRequestInfo(
        number=mr.iid,
        url=mr.web_url,
        title=mr.title,
        state=_STATE_MAP.get(mr.state, MergeRequestState.UNKNOWN),
        merged_at=mr.merged_at,
        merge_commit_sha=mr.merge_commit_sha,
    )


class GitLabApi(ApiAdapter):
    """REST transport for GitLab merge requests."""

    service = ServiceTag.GITLAB

    async def check_auth(self) -> str:
        data = await self.client.request("GET", "/user", operation="check_auth")
        return self._parse(GitLabUser, data, "check_auth").username

    async def resolve_project(self, repo: RepoIdentifier, operation: str) -> GitLabProject:
        """Look up the project behind a namespace path."""
        encoded = quote(repo.full_path, safe="")
        data = await self.client.request("GET", f"/projects/{encoded}", operation=operation)
        return self._parse(GitLabProject, data, operation)

    async def create_merge_request(self, req: CreateRequest) -> MergeRequestInfo:
        project = await self.resolve_project(req.repo, "create_merge_request")
        body = GitLabCreateMergeRequest(
            title=req.title,
            source_branch=req.source_branch,
            target_branch=req.target_branch,
            description=req.description,
        )
        data = await self.client.request(
            "POST",
            f"/projects/{project.id}/merge_requests",
            json_body=body.model_dump(),
            operation="create_merge_request",
        )
        return _to_info(self._parse(GitLabMergeRequest, data, "create_merge_request"))

    async def list_for_branch(
        self, repo: RepoIdentifier, branch: str
    ) -> list[MergeRequestInfo]:
        project = await self.resolve_project(repo, "list_for_branch")
        data = await self.client.request(
            "GET",
            f"/projects/{project.id}/merge_requests",
            params={"source_branch": branch, "state": "all", "per_page": PER_PAGE},
            operation="list_for_branch",
        )
        return [
            _to_info(mr)
            for mr in self._parse_list(GitLabMergeRequest, data, "list_for_branch")
        ]

    async def get_merge_request(
        self, repo: RepoIdentifier, number: int
    ) -> MergeRequestInfo:
        project = await self.resolve_project(repo, "get_merge_request")
        data = await self.client.request(
            "GET",
            f"/projects/{project.id}/merge_requests/{number}",
            operation="get_merge_request",
        )
        return _to_info(self._parse(GitLabMergeRequest, data, "get_merge_request"))

    async def get_comments(self, repo: RepoIdentifier, number: int) -> list[Comment]:
        project = await self.resolve_project(repo, "get_comments")
        data = await self.client.request(
            "GET",
            f"/projects/{project.id}/merge_requests/{number}/notes",
            params={"sort": "asc", "order_by": "created_at", "per_page": PER_PAGE},
            operation="get_comments",
        )
        mr_url = project.web_url or f"https://{repo.web_host}/{repo.full_path}"
        mr_url = f"{mr_url}/-/merge_requests/{number}"

        comments: list[Comment] = []
        for note in self._parse_list(GitLabNote, data, "get_comments"):
            if note.system:
                # Branch pushes, label changes and similar events
                continue
            author = note.author.username if note.author else ""
            url = f"{mr_url}#note_{note.id}"
            if note.type == "DiffNote" and note.position is not None:
                position = note.position
                comments.append(
                    InlineComment(
                        id=str(note.id),
                        author=author,
                        body=note.body,
                        created_at=note.created_at,
                        url=url,
                        file_path=position.new_path or position.old_path or "",
                        line=(
                            position.new_line
                            if position.new_line is not None
                            else position.old_line
                        ),
                    )
                )
            else:
                comments.append(
                    GeneralComment(
                        id=str(note.id),
                        author=author,
                        body=note.body,
                        created_at=note.created_at,
                        url=url,
                    )
                )
        return sort_comments(comments)
