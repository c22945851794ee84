"""Lifecycle owner for the single active background refresh pass.

State machine::

    IDLE --start()--> RUNNING(g+1)
    RUNNING(g) --start()--> CANCELLING(g) --old pass exits--> RUNNING(g+1)
    RUNNING(g) --on_pass_complete(g)--> IDLE

Each generation owns one cancel event shared by its full pass and by any
single-repository re-probes spawned under it, so a restart stops all of them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from enum import Enum

from ..errors import ProbeCancelled
from .discovery import Repository
from .probe import ProbeFn
from .refresher import BackgroundRefresher
from .status import UNKNOWN
from .store import StatusStore

logger = logging.getLogger(__name__)

CANCEL_JOIN_TIMEOUT_SECONDS = 5.0

RefresherFactory = Callable[..., BackgroundRefresher]


class SupervisorState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLING = "cancelling"


class RefreshSupervisor:
    def __init__(
        self,
        repositories: Sequence[Repository],
        store: StatusStore,
        probe: ProbeFn,
        *,
        workers: int = 1,
        refresher_factory: RefresherFactory = BackgroundRefresher,
    ) -> None:
        self.repositories = tuple(repositories)
        self._by_name = {repo.name: repo for repo in self.repositories}
        self.store = store
        self.probe = probe
        self.workers = workers
        self._refresher_factory = refresher_factory
        # Guards state fields; never held while joining a thread.
        self._lock = threading.Lock()
        # Serializes restarts so two start() calls cannot interleave.
        self._start_lock = threading.Lock()
        self._state = SupervisorState.IDLE
        self._generation = 0
        self._cancel_event = threading.Event()
        self._active: BackgroundRefresher | None = None
        self._single_probes: list[threading.Thread] = []
        self._closed = False

    @property
    def state(self) -> SupervisorState:
        with self._lock:
            return self._state

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def active(self) -> BackgroundRefresher | None:
        with self._lock:
            return self._active

    def start(self) -> int:
        """Cancel any running pass, then launch a new one; return its generation.

        Blocks for up to ``CANCEL_JOIN_TIMEOUT_SECONDS`` while the old pass
        winds down. After ``shutdown`` nothing new is launched.
        """
        with self._start_lock:
            with self._lock:
                previous = self._active
                previous_cancel = self._cancel_event
                if self._state is SupervisorState.RUNNING:
                    self._state = SupervisorState.CANCELLING

            previous_cancel.set()
            if previous is not None and not previous.join(CANCEL_JOIN_TIMEOUT_SECONDS):
                logger.warning(
                    "generation %d did not exit within %.1fs; its writes will be rejected",
                    previous.generation,
                    CANCEL_JOIN_TIMEOUT_SECONDS,
                )

            with self._lock:
                if self._closed:
                    logger.debug("supervisor shut down; not starting a new pass")
                    return self._generation
                self._generation += 1
                generation = self._generation
                self._cancel_event = threading.Event()
                self.store.mark_all_loading(generation)
                refresher = self._refresher_factory(
                    self.repositories,
                    generation,
                    self.store,
                    self.probe,
                    workers=self.workers,
                    cancel_event=self._cancel_event,
                    on_complete=self.on_pass_complete,
                )
                self._active = refresher
                self._state = SupervisorState.RUNNING

            logger.info("starting refresh generation %d", generation)
            refresher.start()
            return generation

    def on_pass_complete(self, generation: int) -> None:
        with self._lock:
            if self._state is not SupervisorState.RUNNING or generation != self._generation:
                logger.debug("ignored completion of stale generation %d", generation)
                return
            self._state = SupervisorState.IDLE

    def invalidate_one(self, repo_id: str) -> threading.Thread:
        """Re-probe one repository under the current generation.

        The repository shows ``LOADING`` until the probe writes back. Taking a
        fresh write ticket here means a pass probe of the same repository that
        is already in flight cannot overwrite the newer answer. Returns the
        probe thread.
        """
        repo = self._by_name[repo_id]
        with self._lock:
            generation = self._generation
            cancel_event = self._cancel_event
            self._single_probes = [thread for thread in self._single_probes if thread.is_alive()]
            self.store.mark_loading(repo_id, generation)
            ticket = self.store.ticket(repo_id)
            thread = threading.Thread(
                target=self._probe_single,
                args=(repo, generation, ticket, cancel_event),
                name=f"shaur-probe-{repo_id}",
                daemon=True,
            )
            self._single_probes.append(thread)
        thread.start()
        return thread

    def _probe_single(
        self,
        repo: Repository,
        generation: int,
        ticket: int,
        cancel_event: threading.Event,
    ) -> None:
        try:
            status = self.probe(repo.path, cancel_event)
        except ProbeCancelled:
            return
        except Exception:
            logger.exception("single probe of %s raised", repo.name)
            status = UNKNOWN
        if cancel_event.is_set():
            return
        self.store.set(repo.name, status, generation, ticket)

    def shutdown(self, timeout: float = CANCEL_JOIN_TIMEOUT_SECONDS) -> None:
        """Cancel everything in flight and wait briefly for threads to exit."""
        with self._lock:
            self._closed = True
            self._cancel_event.set()
            active = self._active
            singles = list(self._single_probes)
            if self._state is SupervisorState.RUNNING:
                self._state = SupervisorState.CANCELLING
        if active is not None:
            active.join(timeout)
        for thread in singles:
            thread.join(timeout)
        with self._lock:
            self._state = SupervisorState.IDLE
