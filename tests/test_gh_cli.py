"""Tests for the gh command-line adapter."""

import json

import pytest
from conftest import FakeRunner, failed, ok

from git_providers.cli.base import http_statuses
from git_providers.cli.gh_cli import GhCli
from git_providers.core.exceptions import (
    ForbiddenError,
    InvalidRequestError,
    NotAuthenticatedError,
    NotFoundError,
    NotInstalledError,
    ParseError,
    RateLimitedError,
    TransientError,
)
from git_providers.protocol import (
    CreateRequest,
    GeneralComment,
    InlineComment,
    MergeRequestState,
    RepoIdentifier,
    ServiceTag,
)

PR_JSON = {
    "number": 42,
    "url": "https://github.com/octo/widgets/pull/42",
    "title": "Add widgets",
    "state": "MERGED",
    "mergedAt": "2024-05-01T10:00:00Z",
    "mergeCommit": {"oid": "abc123"},
}


def _request(repo, **overrides):
    fields = dict(
        title="Add widgets",
        source_branch="feature",
        target_branch="main",
        repo=repo,
        description="Body",
    )
    fields.update(overrides)
    return CreateRequest(**fields)


class TestCheckAuth:
    @pytest.mark.asyncio
    async def test_authenticated(self):
        runner = FakeRunner(ok("Logged in to github.com as octo"))
        await GhCli(runner=runner).check_auth()
        assert runner.commands == [["gh", "auth", "status", "--hostname", "github.com"]]

    @pytest.mark.asyncio
    async def test_not_logged_in(self):
        runner = FakeRunner(failed("You are not logged into any GitHub hosts. Run gh auth login"))
        with pytest.raises(NotAuthenticatedError):
            await GhCli(runner=runner).check_auth()

    @pytest.mark.asyncio
    async def test_other_failure_means_unauthenticated(self):
        runner = FakeRunner(failed("unexpected error"))
        with pytest.raises(NotAuthenticatedError) as exc_info:
            await GhCli(runner=runner).check_auth()
        assert isinstance(exc_info.value.cause, TransientError)

    @pytest.mark.asyncio
    async def test_not_installed_propagates(self):
        runner = FakeRunner(NotInstalledError("gh"))
        with pytest.raises(NotInstalledError):
            await GhCli(runner=runner).check_auth()

    @pytest.mark.asyncio
    async def test_self_managed_host(self):
        runner = FakeRunner(ok())
        await GhCli(host="ghe.example.com", runner=runner).check_auth()
        assert runner.commands[0][-2:] == ["--hostname", "ghe.example.com"]
        assert runner.envs[0] == {"GH_HOST": "ghe.example.com"}


class TestCreate:
    @pytest.mark.asyncio
    async def test_create(self, github_repo):
        runner = FakeRunner(ok("\nhttps://github.com/octo/widgets/pull/42\n"))
        info = await GhCli(runner=runner).create_merge_request(_request(github_repo))

        assert info.number == 42
        assert info.url == "https://github.com/octo/widgets/pull/42"
        assert info.title == "Add widgets"
        assert info.state == MergeRequestState.OPEN
        command = runner.commands[0]
        assert command[:3] == ["gh", "pr", "create"]
        assert command[command.index("--repo") + 1] == "octo/widgets"
        assert command[command.index("--head") + 1] == "feature"
        assert command[command.index("--base") + 1] == "main"
        assert "--draft" not in command

    @pytest.mark.asyncio
    async def test_create_draft_uses_flag(self, github_repo):
        runner = FakeRunner(ok("https://github.com/octo/widgets/pull/7"))
        info = await GhCli(runner=runner).create_merge_request(
            _request(github_repo, is_draft=True)
        )
        assert "--draft" in runner.commands[0]
        assert info.title == "Add widgets"

    @pytest.mark.asyncio
    async def test_self_managed_repo_argument(self):
        repo = RepoIdentifier(("team",), "svc", ServiceTag.GITHUB, host="ghe.example.com")
        runner = FakeRunner(ok("https://ghe.example.com/team/svc/pull/3"))
        await GhCli(host="ghe.example.com", runner=runner).create_merge_request(
            _request(repo)
        )
        command = runner.commands[0]
        assert command[command.index("--repo") + 1] == "ghe.example.com/team/svc"

    @pytest.mark.asyncio
    async def test_already_exists(self, github_repo):
        runner = FakeRunner(
            failed('a pull request for branch "feature" into branch "main" already exists')
        )
        with pytest.raises(InvalidRequestError):
            await GhCli(runner=runner).create_merge_request(_request(github_repo))

    @pytest.mark.asyncio
    async def test_no_url_in_output(self, github_repo):
        runner = FakeRunner(ok("Creating pull request..."))
        with pytest.raises(ParseError):
            await GhCli(runner=runner).create_merge_request(_request(github_repo))


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_merge_request(self, github_repo):
        runner = FakeRunner(ok(json.dumps(PR_JSON)))
        info = await GhCli(runner=runner).get_merge_request(github_repo, 42)

        assert info.number == 42
        assert info.state == MergeRequestState.MERGED
        assert info.merge_commit_sha == "abc123"
        assert info.merged_at.year == 2024
        assert runner.commands[0][:4] == ["gh", "pr", "view", "42"]

    @pytest.mark.asyncio
    async def test_get_status(self, github_repo):
        runner = FakeRunner(ok(json.dumps({**PR_JSON, "state": "OPEN", "mergedAt": None})))
        assert await GhCli(runner=runner).get_status(github_repo, 42) == MergeRequestState.OPEN

    @pytest.mark.asyncio
    async def test_unknown_state(self, github_repo):
        runner = FakeRunner(ok(json.dumps({**PR_JSON, "state": "QUEUED"})))
        info = await GhCli(runner=runner).get_merge_request(github_repo, 42)
        assert info.state == MergeRequestState.UNKNOWN

    @pytest.mark.asyncio
    async def test_list_for_branch(self, github_repo):
        runner = FakeRunner(ok(json.dumps([PR_JSON, {**PR_JSON, "number": 43}])))
        infos = await GhCli(runner=runner).list_for_branch(github_repo, "feature")

        assert [i.number for i in infos] == [42, 43]
        command = runner.commands[0]
        assert command[command.index("--head") + 1] == "feature"
        assert command[command.index("--state") + 1] == "all"

    @pytest.mark.asyncio
    async def test_list_empty(self, github_repo):
        runner = FakeRunner(ok("[]"))
        assert await GhCli(runner=runner).list_for_branch(github_repo, "feature") == []

    @pytest.mark.asyncio
    async def test_invalid_json(self, github_repo):
        runner = FakeRunner(ok("{not json"))
        with pytest.raises(ParseError):
            await GhCli(runner=runner).get_merge_request(github_repo, 42)

    @pytest.mark.asyncio
    async def test_missing_fields(self, github_repo):
        runner = FakeRunner(ok(json.dumps({"title": "x"})))
        with pytest.raises(ParseError):
            await GhCli(runner=runner).get_merge_request(github_repo, 42)

    @pytest.mark.parametrize(
        "payload",
        [
            {"number": None, "url": "https://github.com/octo/widgets/pull/42"},
            {"number": "forty-two", "url": "https://github.com/octo/widgets/pull/42"},
        ],
    )
    @pytest.mark.asyncio
    async def test_non_numeric_number(self, github_repo, payload):
        runner = FakeRunner(ok(json.dumps(payload)))
        with pytest.raises(ParseError):
            await GhCli(runner=runner).get_merge_request(github_repo, 42)


class TestComments:
    @pytest.mark.asyncio
    async def test_general_and_inline(self, github_repo):
        issue_comments = [
            {
                "id": 1,
                "user": {"login": "alice"},
                "body": "LGTM",
                "created_at": "2024-05-01T10:00:00Z",
                "html_url": "https://github.com/octo/widgets/pull/42#issuecomment-1",
                "author_association": "MEMBER",
            }
        ]
        review_comments = [
            {
                "id": 2,
                "user": {"login": "bob"},
                "body": "nit",
                "created_at": "2024-05-01T09:00:00Z",
                "html_url": "https://github.com/octo/widgets/pull/42#discussion_r2",
                "path": "src/app.py",
                "line": None,
                "original_line": 12,
                "diff_hunk": "@@ -1,3 +1,4 @@",
            }
        ]
        runner = FakeRunner(ok(json.dumps(issue_comments)), ok(json.dumps(review_comments)))
        comments = await GhCli(runner=runner).get_comments(github_repo, 42)

        general = [c for c in comments if isinstance(c, GeneralComment)]
        inline = [c for c in comments if isinstance(c, InlineComment)]
        assert general[0].author == "alice"
        assert general[0].author_association == "MEMBER"
        assert inline[0].file_path == "src/app.py"
        assert inline[0].line == 12
        assert inline[0].diff_context == "@@ -1,3 +1,4 @@"
        assert all(cmd[:2] == ["gh", "api"] for cmd in runner.commands)

    @pytest.mark.asyncio
    async def test_non_object_entries(self, github_repo):
        runner = FakeRunner(ok(json.dumps(["x"])), ok("[]"))
        with pytest.raises(ParseError):
            await GhCli(runner=runner).get_comments(github_repo, 42)

    @pytest.mark.asyncio
    async def test_malformed_user(self, github_repo):
        comment = {
            "id": 1,
            "user": "alice",
            "body": "LGTM",
            "created_at": "2024-05-01T10:00:00Z",
        }
        runner = FakeRunner(ok(json.dumps([comment])), ok("[]"))
        with pytest.raises(ParseError):
            await GhCli(runner=runner).get_comments(github_repo, 42)


class TestFailureMapping:
    """stderr text decides the error kind."""

    @pytest.mark.parametrize(
        "stderr, error_type",
        [
            ("HTTP 401: Bad credentials", NotAuthenticatedError),
            ("To get started with GitHub CLI, please run:  gh auth login", NotAuthenticatedError),
            ("HTTP 403: Resource not accessible (permission denied)", ForbiddenError),
            ("GraphQL: Could not resolve to a Repository", NotFoundError),
            ("no pull requests found for branch", NotFoundError),
            ("HTTP 422: Validation Failed", InvalidRequestError),
            ("API rate limit exceeded for user", RateLimitedError),
            (
                "pull request create failed: GraphQL: No commits between main and fix-4012",
                InvalidRequestError,
            ),
            ("GraphQL: Could not resolve to a PullRequest with the number of 1401.", NotFoundError),
            ("HTTP 404: Not Found (https://api.github.com/repos/octo/widgets/pulls/4290)", NotFoundError),
            ("failed to push branch hotfix-429 to origin", TransientError),
            ("connection reset by peer", TransientError),
        ],
    )
    @pytest.mark.asyncio
    async def test_mapping(self, github_repo, stderr, error_type):
        runner = FakeRunner(failed(stderr))
        with pytest.raises(error_type):
            await GhCli(runner=runner).get_merge_request(github_repo, 42)

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, github_repo):
        runner = FakeRunner(TransientError("gh timed out after 60s"))
        with pytest.raises(TransientError):
            await GhCli(runner=runner).get_merge_request(github_repo, 42)


class TestHttpStatuses:
    @pytest.mark.parametrize(
        "stderr, expected",
        [
            ("http 401: bad credentials", {401}),
            ("api call failed: get https://gitlab.com/api/v4/user: 401", {401}),
            ("error: 404 not found for mr 1401", {404}),
            ("request failed with status code 429", {429}),
            ("no commits between main and fix-4012", set()),
            ("pushed branch release-404-page", set()),
        ],
    )
    def test_extracts_only_status_tokens(self, stderr, expected):
        assert http_statuses(stderr) == expected
