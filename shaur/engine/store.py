"""Generation-gated status map shared by the refresher and the UI loop.

The store is the only shared mutable state in the engine. Every mutation
names the generation it belongs to; a mutation tagged with anything but the
current generation is dropped inside the lock, so results from a superseded
pass can never be observed by a reader. ``mark_all_loading`` is the only way
to advance the generation.

Within one generation a repository can be probed twice: once by the pass and
once by a single re-probe the user asked for. Each repository carries a write
ticket that ``mark_loading`` advances; writers read ``ticket`` before probing
and pass it to ``set``, so the older of two overlapping probes cannot land
after the newer one.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import NamedTuple

from .status import LOADING, UNKNOWN, SyncStatus

logger = logging.getLogger(__name__)


class ProgressSnapshot(NamedTuple):
    done: int
    total: int
    complete: bool


class StatusStore:
    """Thread-safe ``repo name -> SyncStatus`` map with pass progress.

    Readers get copies taken under a short lock and never wait on probes.
    ``version`` increases on every accepted change so pollers can cheaply
    detect whether a redraw is needed, or block in ``wait_for_change``.
    """

    def __init__(self, repo_ids: Iterable[str]) -> None:
        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        self._statuses: dict[str, SyncStatus] = {repo_id: UNKNOWN for repo_id in repo_ids}
        self._tickets: dict[str, int] = dict.fromkeys(self._statuses, 0)
        self._generation = 0
        self._done = 0
        self._complete = False
        self._version = 0

    def _bump(self) -> None:
        self._version += 1
        self._changed.notify_all()

    def _is_current(self, generation: int, what: str, repo_id: str | None = None) -> bool:
        if generation == self._generation:
            return True
        logger.debug(
            "dropped stale %s for %s from generation %d (current %d)",
            what,
            repo_id or "<all>",
            generation,
            self._generation,
        )
        return False

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def get(self, repo_id: str) -> SyncStatus:
        with self._lock:
            return self._statuses.get(repo_id, UNKNOWN)

    def ticket(self, repo_id: str) -> int:
        """Current write ticket of ``repo_id``; read it just before probing."""
        with self._lock:
            return self._tickets[repo_id]

    def set(
        self,
        repo_id: str,
        status: SyncStatus,
        generation: int,
        ticket: int | None = None,
    ) -> bool:
        """Store ``status`` if ``generation`` is current; return whether it landed.

        With ``ticket`` the write is also dropped when a newer probe of the
        same repository was started after that ticket was read.
        """
        with self._lock:
            if repo_id not in self._statuses:
                raise KeyError(repo_id)
            if not self._is_current(generation, "write", repo_id):
                return False
            if ticket is not None and ticket != self._tickets[repo_id]:
                logger.debug(
                    "dropped superseded write for %s (ticket %d, current %d)",
                    repo_id,
                    ticket,
                    self._tickets[repo_id],
                )
                return False
            self._statuses[repo_id] = status
            self._bump()
            return True

    def mark_loading(self, repo_id: str, generation: int) -> bool:
        """Reset one repository to ``LOADING`` ahead of a single re-probe.

        Advances the repository's write ticket, so any probe of it already
        in flight can no longer write.
        """
        with self._lock:
            if repo_id not in self._statuses:
                raise KeyError(repo_id)
            if not self._is_current(generation, "reset", repo_id):
                return False
            self._tickets[repo_id] += 1
            self._statuses[repo_id] = LOADING
            self._bump()
            return True

    def mark_all_loading(self, generation: int) -> None:
        """Adopt ``generation`` and reset every repository and the progress counters.

        From this point on, writes tagged with any older generation are dropped.
        """
        with self._lock:
            if generation <= self._generation:
                raise ValueError(
                    f"generation must increase: {generation} <= {self._generation}"
                )
            self._generation = generation
            for repo_id in self._statuses:
                self._statuses[repo_id] = LOADING
            self._done = 0
            self._complete = False
            self._bump()

    def mark_probed(self, generation: int) -> bool:
        """Count one more finished probe in the current pass."""
        with self._lock:
            if not self._is_current(generation, "progress"):
                return False
            if self._complete:
                return False
            self._done = min(len(self._statuses), self._done + 1)
            self._bump()
            return True

    def mark_complete(self, generation: int) -> bool:
        with self._lock:
            if not self._is_current(generation, "completion"):
                return False
            self._complete = True
            self._bump()
            return True

    def progress(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(self._done, len(self._statuses), self._complete)

    def snapshot(self) -> dict[str, SyncStatus]:
        with self._lock:
            return dict(self._statuses)

    def has_loading(self) -> bool:
        with self._lock:
            return any(status.is_loading for status in self._statuses.values())

    def wait_for_change(self, version: int, timeout: float | None = None) -> int:
        """Block until ``version`` is outdated or ``timeout`` elapses; return the current version."""
        with self._changed:
            self._changed.wait_for(lambda: self._version != version, timeout=timeout)
            return self._version
