"""External collaborators used by the run controller."""

from .executor import CommandExecutor
from .vcs import GitError, GitRepository

__all__ = [
    "CommandExecutor",
    "GitError",
    "GitRepository",
]
