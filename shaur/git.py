"""Read-only git inspection used by the sync-status probe.

Every call runs ``git -C <repo>`` in a child process that is polled so it can
be killed when its deadline passes or when the owning probing pass is
cancelled. Nothing here mutates a repository; ``fetch`` only updates
remote-tracking refs.
"""

from __future__ import annotations

import logging
import os
import subprocess
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass, replace
from pathlib import Path

from .errors import FetchError, GitCommandError, GitTimeout, ProbeCancelled

logger = logging.getLogger(__name__)

GIT_POLL_SECONDS = 0.05
DEFAULT_GIT_TIMEOUT_SECONDS = 10.0
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0


def _git_env() -> dict[str, str]:
    env = dict(os.environ)
    # Never block on a credential prompt; the probe runs without a terminal.
    env["GIT_TERMINAL_PROMPT"] = "0"
    env["LC_ALL"] = "C"
    return env


def _kill(proc: subprocess.Popen[str]) -> None:
    proc.kill()
    proc.communicate()


@dataclass(frozen=True)
class GitClient:
    """Thin wrapper over the git CLI.

    ``cancel_event`` is checked while each child process runs; a client bound
    to a pass is obtained with ``with_cancel``.
    """

    timeout_seconds: float = DEFAULT_GIT_TIMEOUT_SECONDS
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    executable: str = "git"
    cancel_event: threading.Event | None = None

    def with_cancel(self, cancel_event: threading.Event | None) -> GitClient:
        return replace(self, cancel_event=cancel_event)

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def run(
        self,
        path: Path,
        args: Sequence[str],
        timeout_seconds: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run one git command in ``path`` and return its completed process.

        Raises ``ProbeCancelled`` if the cancel event fires while waiting,
        ``GitTimeout`` when the deadline passes, and ``GitCommandError`` when
        git cannot be started. A non-zero exit status is returned, not raised.
        """
        if self._cancelled():
            raise ProbeCancelled(f"cancelled before git {' '.join(args)}")

        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        command = [self.executable, "-C", str(path), *args]
        try:
            proc = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=_git_env(),
            )
        except OSError as exc:
            raise GitCommandError(args, None, str(exc)) from exc

        deadline = time.monotonic() + timeout
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=GIT_POLL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                if self._cancelled():
                    _kill(proc)
                    raise ProbeCancelled(f"cancelled during git {' '.join(args)}") from None
                if time.monotonic() >= deadline:
                    _kill(proc)
                    raise GitTimeout(args, timeout) from None

        return subprocess.CompletedProcess(command, proc.returncode, stdout, stderr)

    def _checked(self, path: Path, args: Sequence[str], timeout_seconds: float | None = None) -> str:
        proc = self.run(path, args, timeout_seconds=timeout_seconds)
        if proc.returncode != 0:
            raise GitCommandError(args, proc.returncode, proc.stderr)
        return proc.stdout

    def is_repo(self, path: Path) -> bool:
        return (path / ".git").is_dir()

    def has_working_changes(self, path: Path) -> bool:
        """True when tracked files are modified or untracked files exist."""
        return bool(self._checked(path, ["status", "--porcelain"]).strip())

    def current_branch(self, path: Path, timeout_seconds: float | None = None) -> str | None:
        """Checked-out branch name, ``None`` on a detached HEAD."""
        branch = self._checked(path, ["branch", "--show-current"], timeout_seconds).strip()
        return branch or None

    def upstream_of(self, branch: str, path: Path) -> str | None:
        upstream = self._checked(
            path,
            ["for-each-ref", "--format=%(upstream:short)", f"refs/heads/{branch}"],
        ).strip()
        return upstream or None

    def fetch(self, path: Path) -> None:
        args = ["fetch", "--quiet"]
        try:
            proc = self.run(path, args, timeout_seconds=self.fetch_timeout_seconds)
        except GitTimeout as exc:
            raise FetchError(args, None, exc.detail) from exc
        except GitCommandError as exc:
            raise FetchError(args, exc.returncode, exc.detail) from exc
        if proc.returncode != 0:
            raise FetchError(args, proc.returncode, proc.stderr)

    def commits_ahead_behind(self, local_ref: str, remote_ref: str, path: Path) -> tuple[int, int]:
        """Return ``(ahead, behind)`` of ``local_ref`` relative to ``remote_ref``."""
        args = ["rev-list", "--left-right", "--count", f"{local_ref}...{remote_ref}"]
        output = self._checked(path, args)
        parts = output.split()
        if len(parts) != 2:
            raise GitCommandError(args, 0, f"unexpected output {output!r}")
        try:
            ahead, behind = int(parts[0]), int(parts[1])
        except ValueError as exc:
            raise GitCommandError(args, 0, f"unexpected output {output!r}") from exc
        return ahead, behind

    def last_commit_relative_date(self, path: Path, timeout_seconds: float | None = None) -> str | None:
        """Committer date of HEAD in git's relative form, e.g. ``3 days ago``."""
        try:
            proc = self.run(
                path,
                ["log", "-1", "--format=%cd", "--date=relative"],
                timeout_seconds=timeout_seconds,
            )
        except GitCommandError as exc:
            logger.debug("last commit lookup failed for %s: %s", path, exc)
            return None
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None
