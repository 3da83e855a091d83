"""
Provider Configuration
======================

Settings consumed by the providers: API tokens, self-managed base URLs,
timeouts and the retry budget.

Values come from the environment (or a ``.env`` file) once, when the
settings object is built, and are then passed explicitly into the factory.
Nothing in this package reads the environment after construction.

Environment variables:
- GITHUB_TOKEN / GH_TOKEN: GitHub API token
- GITLAB_TOKEN: GitLab personal access token
- GITHUB_BASE_URL: GitHub Enterprise URL (e.g. https://ghe.example.com)
- GITLAB_BASE_URL: self-managed GitLab URL (e.g. https://gitlab.example.com)
- GIT_PROVIDER_REQUEST_TIMEOUT: HTTP timeout in seconds (default 30)
- GIT_PROVIDER_CLI_TIMEOUT: command-line tool timeout in seconds (default 60)
- GIT_PROVIDER_MAX_ATTEMPTS: REST attempts per call (default 3)
- GIT_PROVIDER_PREFER_CLI: try gh/glab before the REST API (default true)
"""

from __future__ import annotations

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..protocol import ServiceTag


class ProviderSettings(BaseSettings):
    """Explicit configuration for git providers."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    github_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TOKEN", "GH_TOKEN", "github_token"),
    )
    gitlab_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("GITLAB_TOKEN", "gitlab_token"),
    )
    github_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_BASE_URL", "github_base_url"),
    )
    gitlab_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITLAB_BASE_URL", "gitlab_base_url"),
    )
    request_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=120.0,
        validation_alias=AliasChoices("GIT_PROVIDER_REQUEST_TIMEOUT", "request_timeout"),
    )
    cli_timeout: float = Field(
        default=60.0,
        ge=1.0,
        le=600.0,
        validation_alias=AliasChoices("GIT_PROVIDER_CLI_TIMEOUT", "cli_timeout"),
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        validation_alias=AliasChoices("GIT_PROVIDER_MAX_ATTEMPTS", "max_attempts"),
    )
    prefer_cli: bool = Field(
        default=True,
        validation_alias=AliasChoices("GIT_PROVIDER_PREFER_CLI", "prefer_cli"),
    )

    @field_validator("github_token", "gitlab_token", mode="before")
    @classmethod
    def _blank_token_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("github_base_url", "gitlab_base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, value):
        if isinstance(value, str):
            value = value.strip().rstrip("/")
            return value or None
        return value

    def token_for(self, service: ServiceTag) -> SecretStr | None:
        """Get the API token configured for a service."""
        if service is ServiceTag.GITHUB:
            return self.github_token
        return self.gitlab_token

    def base_url_for(self, service: ServiceTag) -> str | None:
        """Get the configured self-managed base URL for a service."""
        if service is ServiceTag.GITHUB:
            return self.github_base_url
        return self.gitlab_base_url
