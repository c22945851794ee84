"""Asynchronous status-refresh engine.

Discovery runs once; a supervisor owns at most one background pass that
probes every repository and publishes generation-tagged results into a
shared ``StatusStore`` which the UI polls.
"""

from __future__ import annotations

from .discovery import DiscoveryResult, Repository, discover_repositories
from .probe import SyncStatusProbe
from .refresher import BackgroundRefresher
from .service import StatusEngine
from .status import StatusKind, SyncStatus, classify_counts
from .store import ProgressSnapshot, StatusStore
from .supervisor import RefreshSupervisor, SupervisorState

__all__ = [
    "BackgroundRefresher",
    "DiscoveryResult",
    "ProgressSnapshot",
    "RefreshSupervisor",
    "Repository",
    "StatusEngine",
    "StatusKind",
    "StatusStore",
    "SupervisorState",
    "SyncStatus",
    "SyncStatusProbe",
    "classify_counts",
    "discover_repositories",
]
