"""
Command-line transports: one adapter per hosting service's CLI tool.
"""

from .base import CliAdapter
from .gh_cli import GhCli
from .glab_cli import GlabCli

__all__ = ["CliAdapter", "GhCli", "GlabCli"]
