"""
Shared fixtures: a scripted subprocess runner, repository identifiers and
explicit settings that never read the developer's environment.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

import pytest

from git_providers.core.config import ProviderSettings
from git_providers.core.safe_subprocess import CommandResult
from git_providers.protocol import RepoIdentifier, ServiceTag

_PROVIDER_ENV_VARS = (
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "GITLAB_TOKEN",
    "GITHUB_BASE_URL",
    "GITLAB_BASE_URL",
    "GIT_PROVIDER_REQUEST_TIMEOUT",
    "GIT_PROVIDER_CLI_TIMEOUT",
    "GIT_PROVIDER_MAX_ATTEMPTS",
    "GIT_PROVIDER_PREFER_CLI",
)


class FakeRunner:
    """
    CommandRunner that replays scripted results.

    Each queued item is a CommandResult or an exception to raise. Once the
    queue is empty every call succeeds with empty output.
    """

    def __init__(self, *results: CommandResult | Exception):
        self.results = list(results)
        self.commands: list[list[str]] = []
        self.envs: list[Mapping[str, str] | None] = []

    def queue(self, *results: CommandResult | Exception) -> None:
        self.results.extend(results)

    async def run(
        self,
        command: Sequence[str],
        env: Mapping[str, str] | None = None,
        cwd: Path | str | None = None,
        timeout: float = 60.0,
    ) -> CommandResult:
        self.commands.append(list(command))
        self.envs.append(env)
        if not self.results:
            return CommandResult(0, "", "")
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(returncode=0, stdout=stdout, stderr="")


def failed(stderr: str, returncode: int = 1) -> CommandResult:
    return CommandResult(returncode=returncode, stdout="", stderr=stderr)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove provider variables so settings only see explicit values."""
    for name in _PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def settings(clean_env) -> ProviderSettings:
    return ProviderSettings(
        _env_file=None,
        github_token="ghp_test",
        gitlab_token="glpat_test",
    )


@pytest.fixture
def github_repo() -> RepoIdentifier:
    return RepoIdentifier(owner_path=("octo",), name="widgets", service=ServiceTag.GITHUB)


@pytest.fixture
def gitlab_repo() -> RepoIdentifier:
    return RepoIdentifier(
        owner_path=("team", "sub"), name="project", service=ServiceTag.GITLAB
    )


@pytest.fixture
def self_managed_gitlab_repo() -> RepoIdentifier:
    return RepoIdentifier(
        owner_path=("team",),
        name="project",
        service=ServiceTag.GITLAB,
        host="gitlab.example.com",
    )
