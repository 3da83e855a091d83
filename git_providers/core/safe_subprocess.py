"""
Safe Subprocess Utilities
=========================

Async execution of external command-line tools (gh, glab, git) with:
- Executable resolution with platform-specific fallbacks
- Timeout enforcement
- Output capture with size limits
- Child process termination on timeout or cancellation

The CLI adapters depend only on the ``CommandRunner`` protocol, so tests
can substitute a fake runner without spawning processes.

Usage:
    runner = AsyncCommandRunner()
    result = await runner.run(["glab", "auth", "status"], timeout=30)
    if result.returncode != 0:
        print(result.stderr)
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from .exceptions import NotInstalledError, TransientError

logger = logging.getLogger(__name__)

# Maximum output size to capture (1MB)
MAX_OUTPUT_SIZE = 1024 * 1024

# Default timeout in seconds
DEFAULT_TIMEOUT = 60.0

# Well-known install locations checked when the tool is not on PATH
_UNIX_FALLBACK_DIRS = (
    "/opt/homebrew/bin",  # Apple Silicon
    "/usr/local/bin",  # Intel Mac
    "/home/linuxbrew/.linuxbrew/bin",  # Linux Homebrew
)

_WINDOWS_FALLBACK_PATHS = {
    "gh": (
        r"%PROGRAMFILES%\GitHub CLI\gh.exe",
        r"%PROGRAMFILES(X86)%\GitHub CLI\gh.exe",
        r"%LOCALAPPDATA%\Programs\GitHub CLI\gh.exe",
    ),
    "glab": (
        r"%PROGRAMFILES%\glab\glab.exe",
        r"%LOCALAPPDATA%\Programs\glab\glab.exe",
    ),
}

# Environment variables that point at a user-installed tool
_PATH_OVERRIDE_VARS = {
    "gh": "GITHUB_CLI_PATH",
    "glab": "GITLAB_CLI_PATH",
}


@dataclass(frozen=True)
class CommandResult:
    """Captured result of an external command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@runtime_checkable
class CommandRunner(Protocol):
    """Run an external command and capture its output."""

    async def run(
        self,
        command: Sequence[str],
        env: Mapping[str, str] | None = None,
        cwd: Path | str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> CommandResult:
        """
        Raises:
            NotInstalledError: If the executable cannot be found
            TransientError: If the command exceeds the timeout
        """
        ...


def find_executable(name: str) -> str | None:
    """Find a tool's executable, with platform-specific fallbacks.

    Priority order:
    1. <TOOL>_CLI_PATH env var (user-configured path)
    2. shutil.which (if the tool is on PATH)
    3. Homebrew paths on macOS / Linux
    4. Windows Program Files paths

    Returns:
        Path to the executable, or None if not found
    """
    env_var = _PATH_OVERRIDE_VARS.get(name)
    if env_var:
        env_path = os.environ.get(env_var)
        if env_path and os.path.isfile(env_path):
            return env_path

    found = shutil.which(name)
    if found:
        return found

    if os.name != "nt":
        for directory in _UNIX_FALLBACK_DIRS:
            candidate = os.path.join(directory, name)
            if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
                return candidate
    else:
        for raw in _WINDOWS_FALLBACK_PATHS.get(name, ()):
            candidate = os.path.expandvars(raw)
            if os.path.isfile(candidate):
                return candidate

    return None


def _decode(data: bytes | None, max_output: int) -> str:
    if not data:
        return ""
    text = data.decode("utf-8", errors="replace")
    if len(text) > max_output:
        omitted = len(text) - max_output
        text = text[:max_output] + f"\n... (truncated, {omitted} bytes omitted)"
    return text


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill a child process and reap it."""
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        return
    await process.wait()


class AsyncCommandRunner:
    """
    ``CommandRunner`` backed by ``asyncio.create_subprocess_exec``.

    The first element of ``command`` is resolved with ``find_executable``;
    the event loop is never blocked while the child runs.
    """

    def __init__(self, max_output: int = MAX_OUTPUT_SIZE):
        self.max_output = max_output

    async def run(
        self,
        command: Sequence[str],
        env: Mapping[str, str] | None = None,
        cwd: Path | str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> CommandResult:
        if not command:
            raise ValueError("command must not be empty")

        tool = command[0]
        executable = find_executable(tool)
        if executable is None:
            raise NotInstalledError(tool)

        child_env = None
        if env:
            child_env = os.environ.copy()
            child_env.update(env)

        logger.debug(f"Running {tool} {' '.join(command[1:3])}")

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *command[1:],
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=child_env,
            )
        except FileNotFoundError as e:
            raise NotInstalledError(tool, cause=e) from e
        except PermissionError as e:
            raise NotInstalledError(tool, cause=e) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
        except asyncio.TimeoutError as e:
            await _terminate(process)
            logger.warning(f"Command timed out after {timeout}s: {tool}")
            raise TransientError(f"{tool} timed out after {timeout}s") from e
        except asyncio.CancelledError:
            await _terminate(process)
            raise

        return CommandResult(
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=_decode(stdout, self.max_output),
            stderr=_decode(stderr, self.max_output),
        )
