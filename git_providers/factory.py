"""
Provider Factory
================

Builds a provider for a repository from its remote URL, wiring the CLI and
REST transports to the right host.

API base URL priority:
1. ``base_url_override`` argument
2. ``GITHUB_BASE_URL`` / ``GITLAB_BASE_URL`` from settings
3. The self-managed host detected in the remote URL
4. The service's public API
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any

from .api.base import ApiAdapter
from .api.client import RestClient, api_base_url, resolve_api_url
from .api.github_api import GitHubApi
from .api.gitlab_api import GitLabApi
from .cli.base import CliAdapter
from .cli.gh_cli import GhCli
from .cli.glab_cli import GlabCli
from .core.config import ProviderSettings
from .core.exceptions import ParseError
from .core.retry import API_RETRY_CONFIG
from .core.safe_subprocess import CommandRunner
from .detection import get_remote_url, parse_remote_url
from .protocol import RepoIdentifier, ServiceTag
from .providers.base import BaseGitProvider
from .providers.github_provider import GitHubProvider
from .providers.gitlab_provider import GitLabProvider

logger = logging.getLogger(__name__)

# service -> (provider, CLI adapter, REST adapter)
_PROVIDER_CLASSES: dict[
    ServiceTag, tuple[type[BaseGitProvider], type[CliAdapter], type[ApiAdapter]]
] = {
    ServiceTag.GITHUB: (GitHubProvider, GhCli, GitHubApi),
    ServiceTag.GITLAB: (GitLabProvider, GlabCli, GitLabApi),
}


def _to_service(service: ServiceTag | str) -> ServiceTag:
    if isinstance(service, ServiceTag):
        return service
    try:
        return ServiceTag(str(service).lower())
    except ValueError:
        valid = [s.value for s in ServiceTag]
        raise ParseError(
            f"unknown provider {service!r}; valid providers: {valid}"
        ) from None


def create_provider_by_type(
    service: ServiceTag | str,
    repo: RepoIdentifier,
    base_url_override: str | None = None,
    settings: ProviderSettings | None = None,
    runner: CommandRunner | None = None,
) -> BaseGitProvider:
    """
    Build the provider for a known service and repository.

    Args:
        service: Service tag (enum or its string value)
        repo: Repository on that service
        base_url_override: Explicit API root or instance URL
        settings: Tokens and timeouts (read from the environment if omitted)
        runner: Subprocess runner for the CLI transport

    Raises:
        ParseError: If the service is unknown or does not match ``repo``
    """
    service = _to_service(service)
    if repo.service is not service:
        raise ParseError(
            f"repository {repo.full_path} is on {repo.service.display_name}, "
            f"not {service.display_name}"
        )
    settings = settings or ProviderSettings()
    provider_cls, cli_cls, api_cls = _PROVIDER_CLASSES[service]

    configured = base_url_override or settings.base_url_for(service)
    if configured:
        base_url = resolve_api_url(service, configured)
    else:
        base_url = api_base_url(service, repo.host)

    client = RestClient(
        service,
        base_url=base_url,
        token=settings.token_for(service),
        timeout=settings.request_timeout,
        retry_config=dataclasses.replace(API_RETRY_CONFIG, max_attempts=settings.max_attempts),
    )
    cli = None
    if settings.prefer_cli:
        cli = cli_cls(host=repo.host, runner=runner, timeout=settings.cli_timeout)

    provider = provider_cls(repo, api=api_cls(client), cli=cli)
    logger.debug(f"Created {provider!r} with API root {base_url}")
    return provider


def create_provider(
    remote_url: str,
    base_url_override: str | None = None,
    settings: ProviderSettings | None = None,
    runner: CommandRunner | None = None,
) -> BaseGitProvider:
    """
    Build the provider for a git remote URL.

    Examples:
        provider = create_provider("git@gitlab.com:team/sub/project.git")
        provider = create_provider(
            "https://ghe.example.com/org/repo",
            base_url_override="https://ghe.example.com/api/v3",
        )

    Raises:
        ParseError: If the remote is malformed or names an unsupported service
    """
    repo = parse_remote_url(remote_url)
    if repo is None:
        raise ParseError(f"unknown provider for remote URL: {remote_url}")
    return create_provider_by_type(
        repo.service,
        repo,
        base_url_override=base_url_override,
        settings=settings,
        runner=runner,
    )


def create_provider_for_path(
    repo_path: Path | str,
    base_url_override: str | None = None,
    settings: ProviderSettings | None = None,
    runner: CommandRunner | None = None,
) -> BaseGitProvider:
    """Build the provider for a local checkout from its remote."""
    remote_url = get_remote_url(repo_path)
    return create_provider(
        remote_url,
        base_url_override=base_url_override,
        settings=settings,
        runner=runner,
    )


def list_supported_services() -> list[dict[str, Any]]:
    """Describe every supported hosting service."""
    return [
        {
            "service": service.value,
            "display_name": service.display_name,
            "public_host": service.public_host,
            "cli_command": service.cli_command,
            "request_term": service.terminology.request,
        }
        for service in ServiceTag
    ]
