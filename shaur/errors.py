"""Exception hierarchy shared by discovery, probing, and the CLI.

Only ``RootNotFound`` and ``NoRepositoriesFound`` are fatal. Everything raised
while probing one repository is folded into a ``SyncStatus`` by the probe.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class ShaurError(Exception):
    """Base class for all errors raised by shaur."""


class RootNotFound(ShaurError):
    """The build directory holding the repositories does not exist."""

    def __init__(self, root: Path) -> None:
        self.root = root
        super().__init__(f"The directory {root} does not exist.")


class NoRepositoriesFound(ShaurError):
    """Discovery succeeded but found no git repositories."""

    def __init__(self, root: Path) -> None:
        self.root = root
        super().__init__(f"No git repositories found in {root}.")


class GitCommandError(ShaurError):
    """A git invocation failed, could not start, or produced unusable output."""

    def __init__(self, args: Sequence[str], returncode: int | None, detail: str = "") -> None:
        self.git_args = tuple(args)
        self.returncode = returncode
        self.detail = detail.strip()
        message = f"git {' '.join(self.git_args)} failed"
        if returncode is not None:
            message += f" with exit code {returncode}"
        if self.detail:
            message += f": {self.detail}"
        super().__init__(message)


class GitTimeout(GitCommandError):
    """A git invocation ran past its deadline and was killed."""

    def __init__(self, args: Sequence[str], timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(args, None, f"timed out after {timeout_seconds:g}s")


class FetchError(GitCommandError):
    """Fetching remote state failed or timed out."""


class ProbeCancelled(ShaurError):
    """The probing pass owning this git call was cancelled."""
