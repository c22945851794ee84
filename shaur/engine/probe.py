"""Synchronous sync-status computation for a single repository.

Rules are evaluated in order and the first match wins:

1. missing directory -> ``[Not found]``
2. no ``.git`` marker -> ``[Not a git repo]``
3. uncommitted or untracked changes -> ``[Modified]``
4. detached HEAD or no upstream -> ``[No remote]``
5. fetch failure or timeout -> ``[Fetch failed]``
6. behind/ahead/up-to-date from ``rev-list`` counts, behind first

Failures are returned as status values. The only exception that escapes is
``ProbeCancelled``, which tells the caller to discard the probe entirely.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from ..errors import FetchError, GitCommandError
from ..git import GitClient
from .status import (
    FETCH_FAILED,
    MODIFIED,
    NO_REMOTE,
    NOT_A_GIT_REPO,
    NOT_FOUND,
    SyncStatus,
    classify_counts,
)

logger = logging.getLogger(__name__)

ProbeFn = Callable[[Path, threading.Event | None], SyncStatus]


class SyncStatusProbe:
    """Callable probe bound to a ``GitClient`` configuration."""

    def __init__(self, client: GitClient | None = None) -> None:
        self.client = client if client is not None else GitClient()

    def __call__(self, path: Path, cancel_event: threading.Event | None = None) -> SyncStatus:
        return self.probe(path, cancel_event)

    def probe(self, path: Path, cancel_event: threading.Event | None = None) -> SyncStatus:
        client = self.client.with_cancel(cancel_event)

        if not path.exists():
            return NOT_FOUND
        if not client.is_repo(path):
            return NOT_A_GIT_REPO

        try:
            if client.has_working_changes(path):
                return MODIFIED
            branch = client.current_branch(path)
            upstream = client.upstream_of(branch, path) if branch is not None else None
        except GitCommandError as exc:
            # The marker exists but git cannot operate on it.
            logger.warning("git inspection failed for %s: %s", path, exc)
            return NOT_A_GIT_REPO

        if branch is None or upstream is None:
            return NO_REMOTE

        try:
            client.fetch(path)
        except FetchError as exc:
            logger.info("fetch failed for %s: %s", path, exc)
            return FETCH_FAILED

        try:
            ahead, behind = client.commits_ahead_behind(branch, upstream, path)
        except GitCommandError as exc:
            # Upstream ref vanished or is unreadable after the fetch.
            logger.warning("cannot compare %s with %s in %s: %s", branch, upstream, path, exc)
            return FETCH_FAILED

        return classify_counts(ahead, behind)
