"""UI-facing facade over discovery, store, and refresh supervisor."""

from __future__ import annotations

import threading
from collections.abc import Sequence

from ..git import GitClient
from .discovery import DiscoveryResult, Repository
from .probe import ProbeFn, SyncStatusProbe
from .status import SyncStatus
from .store import ProgressSnapshot, StatusStore
from .supervisor import CANCEL_JOIN_TIMEOUT_SECONDS, RefreshSupervisor


class StatusEngine:
    """Everything the interactive loop needs, and nothing that blocks it.

    Reads are snapshots from the store. Refresh requests return immediately:
    even the restart of a full pass, which may wait on a slow pass to exit,
    runs on its own thread. Probing happens on supervisor-owned threads.
    """

    def __init__(
        self,
        discovery: DiscoveryResult,
        *,
        probe: ProbeFn | None = None,
        client: GitClient | None = None,
        workers: int = 1,
    ) -> None:
        self.discovery = discovery
        self.client = client if client is not None else GitClient()
        self.store = StatusStore(repo.name for repo in discovery.repositories)
        self.supervisor = RefreshSupervisor(
            discovery.repositories,
            self.store,
            probe if probe is not None else SyncStatusProbe(self.client),
            workers=workers,
        )
        self._by_name = {repo.name: repo for repo in discovery.repositories}
        self._restarts: list[threading.Thread] = []
        self._restarts_lock = threading.Lock()

    def list_repositories(self) -> Sequence[Repository]:
        return self.discovery.repositories

    def repository(self, repo_id: str) -> Repository:
        return self._by_name[repo_id]

    @property
    def without_descriptor(self) -> int:
        return self.discovery.without_descriptor

    def current_status(self, repo_id: str) -> SyncStatus:
        return self.store.get(repo_id)

    def progress_snapshot(self) -> ProgressSnapshot:
        return self.store.progress()

    def statuses(self) -> dict[str, SyncStatus]:
        return self.store.snapshot()

    def is_refreshing(self) -> bool:
        """True while a pass or a single re-probe still has results outstanding."""
        return not self.store.progress().complete or self.store.has_loading()

    @property
    def change_version(self) -> int:
        return self.store.version

    def wait_for_change(self, version: int, timeout: float | None = None) -> int:
        return self.store.wait_for_change(version, timeout)

    def request_full_refresh(self) -> threading.Thread:
        """Restart the background pass; return the thread doing the restart."""
        thread = threading.Thread(target=self.supervisor.start, name="shaur-restart", daemon=True)
        with self._restarts_lock:
            self._restarts = [restart for restart in self._restarts if restart.is_alive()]
            self._restarts.append(thread)
        thread.start()
        return thread

    def request_single_refresh(self, repo_id: str) -> threading.Thread:
        return self.supervisor.invalidate_one(repo_id)

    def shutdown(self) -> None:
        self.supervisor.shutdown()
        with self._restarts_lock:
            restarts = list(self._restarts)
        for thread in restarts:
            thread.join(CANCEL_JOIN_TIMEOUT_SECONDS)
