"""Lifecycle tests for the refresh supervisor.

Probes are plain callables that block on events, so each test controls
exactly when a pass is mid-flight.
"""

from __future__ import annotations

import threading
import unittest
from pathlib import Path

from shaur.engine.discovery import Repository
from shaur.engine.status import LOADING, MODIFIED, UP_TO_DATE, SyncStatus
from shaur.engine.store import StatusStore
from shaur.engine.supervisor import RefreshSupervisor, SupervisorState

WAIT = 5.0


def _repos(*names: str) -> list[Repository]:
    return [Repository(name=name, path=Path("/builds") / name, has_descriptor=True) for name in names]


class GatedProbe:
    """Blocks until cancelled while ``hold`` is set, then reports ``late``."""

    def __init__(self, result: SyncStatus = UP_TO_DATE, late: SyncStatus = MODIFIED) -> None:
        self.hold = threading.Event()
        self.entered = threading.Event()
        self.result = result
        self.late = late

    def __call__(self, path: Path, cancel_event: threading.Event | None) -> SyncStatus:
        if self.hold.is_set():
            self.entered.set()
            assert cancel_event is not None
            cancel_event.wait(WAIT)
            return self.late
        return self.result


class RefreshSupervisorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.repos = _repos("a", "b")
        self.store = StatusStore(repo.name for repo in self.repos)
        self.probe = GatedProbe()
        self.supervisor = RefreshSupervisor(self.repos, self.store, self.probe)

    def tearDown(self) -> None:
        self.supervisor.shutdown(WAIT)

    def _wait_idle(self) -> None:
        active = self.supervisor.active
        self.assertIsNotNone(active)
        self.assertTrue(active.join(WAIT))

    def test_start_runs_a_pass_and_returns_to_idle(self) -> None:
        self.assertEqual(self.supervisor.state, SupervisorState.IDLE)
        generation = self.supervisor.start()
        self._wait_idle()

        self.assertEqual(generation, 1)
        self.assertEqual(self.supervisor.state, SupervisorState.IDLE)
        self.assertEqual(self.store.snapshot(), {"a": UP_TO_DATE, "b": UP_TO_DATE})
        self.assertTrue(self.store.progress().complete)

    def test_restart_cancels_running_pass_and_drops_its_results(self) -> None:
        self.probe.hold.set()
        first = self.supervisor.start()
        self.assertTrue(self.probe.entered.wait(WAIT))
        self.assertEqual(self.supervisor.state, SupervisorState.RUNNING)

        self.probe.hold.clear()
        second = self.supervisor.start()
        self._wait_idle()

        self.assertEqual((first, second), (1, 2))
        self.assertEqual(self.store.generation, 2)
        # The first pass answered MODIFIED after cancellation; none of it may land.
        self.assertEqual(self.store.snapshot(), {"a": UP_TO_DATE, "b": UP_TO_DATE})
        self.assertEqual(self.store.progress().done, 2)

    def test_back_to_back_starts_leave_one_generation(self) -> None:
        for _ in range(5):
            self.supervisor.start()
        self._wait_idle()

        self.assertEqual(self.supervisor.generation, 5)
        self.assertEqual(self.store.generation, 5)
        self.assertTrue(self.store.progress().complete)

    def test_stale_completion_is_ignored(self) -> None:
        self.probe.hold.set()
        generation = self.supervisor.start()
        self.assertTrue(self.probe.entered.wait(WAIT))

        self.supervisor.on_pass_complete(generation - 1)
        self.assertEqual(self.supervisor.state, SupervisorState.RUNNING)

        self.supervisor.on_pass_complete(generation)
        self.assertEqual(self.supervisor.state, SupervisorState.IDLE)

    def test_invalidate_one_shows_loading_until_cancelled(self) -> None:
        self.supervisor.start()
        self._wait_idle()

        self.probe.result = SyncStatus.behind(1)
        self.probe.hold.set()
        thread = self.supervisor.invalidate_one("a")
        self.assertTrue(self.probe.entered.wait(WAIT))
        self.assertEqual(self.store.get("a"), LOADING)
        self.assertEqual(self.store.get("b"), UP_TO_DATE)

        self.probe.hold.clear()
        self.supervisor.shutdown(WAIT)
        thread.join(WAIT)
        # Cancelled by shutdown, so the late answer is discarded.
        self.assertEqual(self.store.get("a"), LOADING)

    def test_invalidate_one_writes_new_result(self) -> None:
        self.supervisor.start()
        self._wait_idle()

        self.probe.result = SyncStatus.behind(1)
        thread = self.supervisor.invalidate_one("b")
        thread.join(WAIT)
        self.assertEqual(self.store.get("b"), SyncStatus.behind(1))
        self.assertEqual(self.store.get("a"), UP_TO_DATE)

    def test_pass_result_cannot_overwrite_newer_single_reprobe(self) -> None:
        release = threading.Event()
        entered = threading.Event()
        calls: list[str] = []

        def probe(path: Path, cancel_event: threading.Event | None) -> SyncStatus:
            calls.append(path.name)
            if path.name == "a" and calls.count("a") == 1:
                entered.set()
                release.wait(WAIT)
                return SyncStatus.behind(3)
            return UP_TO_DATE

        supervisor = RefreshSupervisor(self.repos, self.store, probe)
        self.addCleanup(supervisor.shutdown, WAIT)
        self.addCleanup(release.set)
        supervisor.start()
        self.assertTrue(entered.wait(WAIT))

        # The user pulled "a" while the pass was still fetching it.
        supervisor.invalidate_one("a").join(WAIT)
        self.assertEqual(self.store.get("a"), UP_TO_DATE)

        release.set()
        active = supervisor.active
        self.assertIsNotNone(active)
        self.assertTrue(active.join(WAIT))

        self.assertEqual(self.store.get("a"), UP_TO_DATE)
        self.assertEqual(self.store.progress(), (2, 2, True))

    def test_start_after_shutdown_launches_nothing(self) -> None:
        self.supervisor.shutdown(WAIT)
        self.assertEqual(self.supervisor.start(), 0)
        self.assertIsNone(self.supervisor.active)
        self.assertEqual(self.supervisor.state, SupervisorState.IDLE)

    def test_full_restart_cancels_single_reprobe(self) -> None:
        self.supervisor.start()
        self._wait_idle()

        self.probe.hold.set()
        thread = self.supervisor.invalidate_one("a")
        self.assertTrue(self.probe.entered.wait(WAIT))

        self.probe.hold.clear()
        self.supervisor.start()
        thread.join(WAIT)
        self._wait_idle()

        self.assertFalse(thread.is_alive())
        self.assertEqual(self.store.get("a"), UP_TO_DATE)

    def test_invalidate_unknown_repository_raises(self) -> None:
        with self.assertRaises(KeyError):
            self.supervisor.invalidate_one("missing")


if __name__ == "__main__":
    unittest.main()
