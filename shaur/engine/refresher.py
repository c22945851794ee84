"""One background probing pass over the repository list."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from ..errors import ProbeCancelled
from .discovery import Repository
from .probe import ProbeFn
from .status import UNKNOWN
from .store import StatusStore

logger = logging.getLogger(__name__)


class BackgroundRefresher:
    """Probe every repository once and publish results under ``generation``.

    With ``workers == 1`` repositories are probed in list order on the pass
    thread; larger values fan out over a thread pool, so completion order is
    not guaranteed. After ``cancel`` no new probe starts and no further write
    is attempted; probes already inside git are killed through the shared
    cancel event, and anything that still lands late is rejected by the
    store's generation check.
    """

    def __init__(
        self,
        repositories: Sequence[Repository],
        generation: int,
        store: StatusStore,
        probe: ProbeFn,
        *,
        workers: int = 1,
        cancel_event: threading.Event | None = None,
        on_complete: Callable[[int], None] | None = None,
    ) -> None:
        self.repositories = tuple(repositories)
        self.generation = generation
        self.store = store
        self.probe = probe
        self.workers = max(1, workers)
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self.on_complete = on_complete
        self.completed = False
        self._probed = 0
        self._count_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("refresher already started")
        self._thread = threading.Thread(
            target=self.run,
            name=f"shaur-refresh-{self.generation}",
            daemon=True,
        )
        self._thread.start()

    def cancel(self) -> None:
        self.cancel_event.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the pass thread; return ``True`` once it has exited."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run(self) -> None:
        """Execute the pass on the calling thread."""
        logger.info(
            "generation %d: probing %d repositories with %d worker(s)",
            self.generation,
            len(self.repositories),
            self.workers,
        )
        if self.workers == 1:
            for repo in self.repositories:
                if self.cancelled:
                    break
                self._probe_one(repo)
        else:
            with ThreadPoolExecutor(
                max_workers=self.workers,
                thread_name_prefix=f"shaur-probe-{self.generation}",
            ) as pool:
                futures = [pool.submit(self._probe_one, repo) for repo in self.repositories]
                for future in futures:
                    future.result()

        if self.cancelled:
            logger.info("generation %d: cancelled after %d probe(s)", self.generation, self._probed)
            return
        if self._probed == len(self.repositories):
            self.store.mark_complete(self.generation)
            self.completed = True
            logger.info("generation %d: complete", self.generation)
            if self.on_complete is not None:
                self.on_complete(self.generation)

    def _probe_one(self, repo: Repository) -> None:
        if self.cancelled:
            return
        ticket = self.store.ticket(repo.name)
        try:
            status = self.probe(repo.path, self.cancel_event)
        except ProbeCancelled:
            return
        except Exception:
            # One broken repository must not stop the pass.
            logger.exception("generation %d: probe of %s raised", self.generation, repo.name)
            status = UNKNOWN

        if self.cancelled:
            return
        # A newer single re-probe of this repository may own the slot now; the
        # pass still counts it as probed.
        self.store.set(repo.name, status, self.generation, ticket)
        self.store.mark_probed(self.generation)
        with self._count_lock:
            self._probed += 1
