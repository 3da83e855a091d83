"""
Git Provider Detection
======================

Detect the hosting service and repository from a git remote URL.

Supported remote forms:
- https://host[:port]/owner/.../name[.git]
- ssh://[user@]host[:port]/owner/.../name[.git]  (also git://, git+ssh://)
- [user@]host:owner/.../name[.git]               (scp-like SSH)

Service detection is hostname based. An exact (or subdomain) match on a
service's public host means the public instance; otherwise a hostname that
names the product (``gitlab.mycompany.com``) means a self-managed instance.
Anything else is an unknown provider: there is no default service.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from urllib.parse import urlsplit

from .core.exceptions import ParseError
from .protocol import RepoIdentifier, ServiceTag

logger = logging.getLogger(__name__)

_URL_SCHEMES = frozenset({"http", "https", "ssh", "git", "git+ssh", "ssh+git"})
_WEB_SCHEMES = frozenset({"http", "https"})

# [user@]host:path, where host has no slash and path does not start with "//"
_SCP_LIKE = re.compile(r"^(?:[^@/\s]+@)?(?P<host>[^:/\s]+):(?!//)(?P<path>.+)$")

_HOSTNAME = re.compile(r"^[a-z0-9]([a-z0-9.\-]*[a-z0-9])?$")

# Remotes tried in order before falling back to the first configured one
_PREFERRED_REMOTES = ("origin", "upstream")


def _split_remote(remote_url: str) -> tuple[str, str] | None:
    """Split a remote URL into (host, path); host keeps an HTTP(S) port."""
    url = remote_url.strip()
    if not url:
        return None

    if "://" in url:
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        if scheme not in _URL_SCHEMES or not parts.hostname:
            return None
        host = parts.hostname.lower()
        port = parts.port  # raises ValueError on a malformed port
        if port and scheme in _WEB_SCHEMES:
            host = f"{host}:{port}"
        return host, parts.path

    match = _SCP_LIKE.match(url)
    if match is None:
        return None
    host = match.group("host").lower()
    if len(host) == 1:
        # Windows drive letter (C:\repo), not a host
        return None
    return host, match.group("path")


def _split_path(path: str) -> tuple[tuple[str, ...], str] | None:
    """Split a repository path into (owner_path, name)."""
    path = path.strip().strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    segments = [segment for segment in path.split("/") if segment]
    if len(segments) < 2:
        return None
    if any(segment in (".", "..") for segment in segments):
        return None
    return tuple(segments[:-1]), segments[-1]


def _match_service(host: str) -> tuple[ServiceTag, bool] | None:
    """
    Match a hostname against the known services.

    Returns:
        (service, is_public_instance), or None for an unknown host
    """
    hostname = host.split(":", 1)[0]
    if not _HOSTNAME.match(hostname):
        return None

    for service in ServiceTag:
        public = service.public_host
        if hostname == public or hostname.endswith(f".{public}"):
            return service, True

    for service in ServiceTag:
        if service.value in hostname:
            return service, False

    return None


def parse_remote_url(remote_url: str) -> RepoIdentifier | None:
    """
    Parse a git remote URL into a repository identifier.

    Pure and total: malformed or unrecognized input yields None rather than
    raising.

    Args:
        remote_url: Remote URL as printed by ``git remote -v``

    Returns:
        RepoIdentifier, or None if the URL is malformed or the host matches
        no known service
    """
    if not isinstance(remote_url, str):
        return None

    try:
        split = _split_remote(remote_url)
    except ValueError:
        return None
    if split is None:
        return None
    host, path = split

    matched = _match_service(host)
    if matched is None:
        return None
    service, is_public = matched

    owner_and_name = _split_path(path)
    if owner_and_name is None:
        return None
    owner_path, name = owner_and_name

    return RepoIdentifier(
        owner_path=owner_path,
        name=name,
        service=service,
        host=None if is_public else host,
    )


def detect_service(remote_url: str) -> ServiceTag | None:
    """Detect only the hosting service of a remote URL."""
    repo = parse_remote_url(remote_url)
    return repo.service if repo else None


def _git_config_get(repo_path: Path, key: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", "config", "--get", key],
            cwd=repo_path,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (subprocess.TimeoutExpired, OSError):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def get_remote_url(repo_path: Path | str) -> str:
    """
    Read the remote URL of a local repository.

    Tries ``origin``, then ``upstream``, then the first configured remote.

    Raises:
        ParseError: If the path is not a git repository or has no remote
    """
    repo_path = Path(repo_path)

    for name in _PREFERRED_REMOTES:
        url = _git_config_get(repo_path, f"remote.{name}.url")
        if url:
            return url

    try:
        result = subprocess.run(
            ["git", "remote"],
            cwd=repo_path,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        raise ParseError(f"could not read remotes of {repo_path}", cause=e) from e

    if result.returncode == 0:
        for name in result.stdout.split():
            url = _git_config_get(repo_path, f"remote.{name}.url")
            if url:
                return url

    raise ParseError(f"no remote URL found for {repo_path}")


def detect_repository(repo_path: Path | str) -> RepoIdentifier:
    """
    Detect the hosting service and repository of a local checkout.

    Raises:
        ParseError: If there is no remote or its host is not supported
    """
    url = get_remote_url(repo_path)
    repo = parse_remote_url(url)
    if repo is None:
        logger.debug(f"Unrecognized remote for {repo_path}")
        raise ParseError(f"unknown provider for remote URL: {url}")
    return repo
