"""Rule-order tests for the sync-status probe against a scripted git client."""

from __future__ import annotations

import tempfile
import threading
import unittest
from pathlib import Path

from shaur.engine.probe import SyncStatusProbe
from shaur.engine.status import (
    FETCH_FAILED,
    MODIFIED,
    NO_REMOTE,
    NOT_A_GIT_REPO,
    NOT_FOUND,
    UP_TO_DATE,
    SyncStatus,
)
from shaur.errors import FetchError, GitCommandError, ProbeCancelled


class ScriptedGitClient:
    def __init__(
        self,
        *,
        repo: bool = True,
        dirty: bool = False,
        branch: str | None = "master",
        upstream: str | None = "origin/master",
        fetch_error: Exception | None = None,
        counts: tuple[int, int] | Exception = (0, 0),
        status_error: Exception | None = None,
    ) -> None:
        self.repo = repo
        self.dirty = dirty
        self.branch = branch
        self.upstream = upstream
        self.fetch_error = fetch_error
        self.counts = counts
        self.status_error = status_error
        self.calls: list[str] = []
        self.bound_events: list[threading.Event | None] = []

    def with_cancel(self, cancel_event):
        self.bound_events.append(cancel_event)
        return self

    def is_repo(self, path: Path) -> bool:
        self.calls.append("is_repo")
        return self.repo

    def has_working_changes(self, path: Path) -> bool:
        self.calls.append("status")
        if self.status_error is not None:
            raise self.status_error
        return self.dirty

    def current_branch(self, path: Path) -> str | None:
        self.calls.append("branch")
        return self.branch

    def upstream_of(self, branch: str, path: Path) -> str | None:
        self.calls.append("upstream")
        return self.upstream

    def fetch(self, path: Path) -> None:
        self.calls.append("fetch")
        if self.fetch_error is not None:
            raise self.fetch_error

    def commits_ahead_behind(self, local_ref: str, remote_ref: str, path: Path) -> tuple[int, int]:
        self.calls.append("rev-list")
        if isinstance(self.counts, Exception):
            raise self.counts
        return self.counts


class SyncStatusProbeTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _probe(self, client: ScriptedGitClient, path: Path | None = None) -> SyncStatus:
        return SyncStatusProbe(client).probe(path or self.path)

    def test_missing_directory_is_not_found_without_git_calls(self) -> None:
        client = ScriptedGitClient()
        self.assertEqual(self._probe(client, self.path / "gone"), NOT_FOUND)
        self.assertEqual(client.calls, [])

    def test_missing_marker_is_not_a_git_repo(self) -> None:
        client = ScriptedGitClient(repo=False)
        self.assertEqual(self._probe(client), NOT_A_GIT_REPO)
        self.assertEqual(client.calls, ["is_repo"])

    def test_dirty_tree_is_modified_and_skips_fetch(self) -> None:
        client = ScriptedGitClient(dirty=True, counts=(0, 5))
        self.assertEqual(self._probe(client), MODIFIED)
        self.assertNotIn("fetch", client.calls)

    def test_detached_head_is_no_remote(self) -> None:
        client = ScriptedGitClient(branch=None)
        self.assertEqual(self._probe(client), NO_REMOTE)
        self.assertNotIn("upstream", client.calls)
        self.assertNotIn("fetch", client.calls)

    def test_missing_upstream_is_no_remote(self) -> None:
        client = ScriptedGitClient(upstream=None)
        self.assertEqual(self._probe(client), NO_REMOTE)
        self.assertNotIn("fetch", client.calls)

    def test_fetch_failure_is_fetch_failed(self) -> None:
        client = ScriptedGitClient(fetch_error=FetchError(["fetch"], 128, "no route"))
        self.assertEqual(self._probe(client), FETCH_FAILED)
        self.assertNotIn("rev-list", client.calls)

    def test_rev_list_failure_after_fetch_is_fetch_failed(self) -> None:
        client = ScriptedGitClient(counts=GitCommandError(["rev-list"], 128, "bad ref"))
        self.assertEqual(self._probe(client), FETCH_FAILED)

    def test_local_git_failure_is_not_a_git_repo(self) -> None:
        client = ScriptedGitClient(status_error=GitCommandError(["status"], 128, "not a git repository"))
        self.assertEqual(self._probe(client), NOT_A_GIT_REPO)

    def test_counts_map_to_behind_ahead_and_up_to_date(self) -> None:
        self.assertEqual(self._probe(ScriptedGitClient(counts=(0, 0))), UP_TO_DATE)
        self.assertEqual(self._probe(ScriptedGitClient(counts=(0, 4))), SyncStatus.behind(4))
        self.assertEqual(self._probe(ScriptedGitClient(counts=(2, 0))), SyncStatus.ahead(2))

    def test_diverged_branch_reports_behind(self) -> None:
        self.assertEqual(self._probe(ScriptedGitClient(counts=(3, 2))), SyncStatus.behind(2))

    def test_probing_twice_gives_the_same_status(self) -> None:
        client = ScriptedGitClient(counts=(1, 0))
        probe = SyncStatusProbe(client)
        self.assertEqual(probe(self.path), probe(self.path))

    def test_cancellation_propagates(self) -> None:
        client = ScriptedGitClient(fetch_error=ProbeCancelled("stop"))
        with self.assertRaises(ProbeCancelled):
            self._probe(client)

    def test_cancel_event_is_bound_to_the_client(self) -> None:
        client = ScriptedGitClient()
        event = threading.Event()
        SyncStatusProbe(client)(self.path, event)
        self.assertEqual(client.bound_events, [event])


if __name__ == "__main__":
    unittest.main()
