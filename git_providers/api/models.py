"""
Wire Models
===========

Pydantic models for the subset of the GitHub and GitLab REST payloads the
adapters consume. Unknown fields are ignored so additive API changes do not
break parsing.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# =============================================================================
# GitHub
# =============================================================================


class GitHubUser(_WireModel):
    login: str = ""


class GitHubPullRequest(_WireModel):
    number: int
    html_url: str
    title: str = ""
    state: str = "open"
    draft: bool = False
    merged: bool = False
    merged_at: datetime | None = None
    merge_commit_sha: str | None = None


class GitHubIssueComment(_WireModel):
    id: int
    user: GitHubUser | None = None
    body: str | None = None
    created_at: datetime
    html_url: str = ""
    author_association: str = ""


class GitHubReviewComment(GitHubIssueComment):
    path: str = ""
    line: int | None = None
    original_line: int | None = None
    diff_hunk: str = ""


class GitHubCreatePull(_WireModel):
    """Request body for ``POST /repos/{owner}/{repo}/pulls``."""

    title: str
    head: str
    base: str
    body: str = ""
    draft: bool = False


# =============================================================================
# GitLab
# =============================================================================


class GitLabUser(_WireModel):
    username: str = ""


class GitLabProject(_WireModel):
    id: int
    path_with_namespace: str = ""
    web_url: str = ""


class GitLabMergeRequest(_WireModel):
    iid: int
    web_url: str
    title: str = ""
    state: str = "opened"
    draft: bool = False
    merged_at: datetime | None = None
    merge_commit_sha: str | None = None


class GitLabPosition(_WireModel):
    new_path: str | None = None
    old_path: str | None = None
    new_line: int | None = None
    old_line: int | None = None


class GitLabNote(_WireModel):
    id: int
    type: str | None = None
    body: str = ""
    author: GitLabUser | None = None
    created_at: datetime
    system: bool = False
    position: GitLabPosition | None = None


class GitLabCreateMergeRequest(_WireModel):
    """Request body for ``POST /projects/{id}/merge_requests``."""

    title: str
    source_branch: str
    target_branch: str
    description: str = ""
    remove_source_branch: bool = False


class ApiErrorBody(_WireModel):
    """Error envelope; GitHub uses ``message``, GitLab ``message`` or ``error``."""

    message: str | list | dict | None = None
    error: str | None = None

    def text(self) -> str:
        if self.message:
            return str(self.message)
        return self.error or ""
