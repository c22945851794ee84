"""Sync-status values reported for each repository.

``SyncStatus`` is a small tagged value: a ``StatusKind`` plus a commit count
that is only meaningful for ``BEHIND`` and ``AHEAD``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StatusKind(Enum):
    UNKNOWN = "unknown"
    LOADING = "loading"
    NOT_FOUND = "not_found"
    NOT_A_GIT_REPO = "not_a_git_repo"
    MODIFIED = "modified"
    FETCH_FAILED = "fetch_failed"
    BEHIND = "behind"
    AHEAD = "ahead"
    UP_TO_DATE = "up_to_date"
    NO_REMOTE = "no_remote"


_COUNTED_KINDS = frozenset({StatusKind.BEHIND, StatusKind.AHEAD})

_LABELS = {
    StatusKind.UNKNOWN: "[Unknown]",
    StatusKind.LOADING: "[Loading...]",
    StatusKind.NOT_FOUND: "[Not found]",
    StatusKind.NOT_A_GIT_REPO: "[Not a git repo]",
    StatusKind.MODIFIED: "[Modified]",
    StatusKind.FETCH_FAILED: "[Fetch failed]",
    StatusKind.UP_TO_DATE: "[Up to date]",
    StatusKind.NO_REMOTE: "[No remote]",
}


@dataclass(frozen=True)
class SyncStatus:
    """Relationship between a repository's local branch and its upstream."""

    kind: StatusKind
    count: int = 0

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"commit count must be non-negative, got {self.count}")
        if self.count and self.kind not in _COUNTED_KINDS:
            raise ValueError(f"{self.kind.name} does not carry a commit count")

    @classmethod
    def behind(cls, count: int) -> SyncStatus:
        return cls(StatusKind.BEHIND, count)

    @classmethod
    def ahead(cls, count: int) -> SyncStatus:
        return cls(StatusKind.AHEAD, count)

    @property
    def label(self) -> str:
        """Bracketed text shown next to the repository name."""
        if self.kind is StatusKind.BEHIND:
            return f"[Behind {self.count}]"
        if self.kind is StatusKind.AHEAD:
            return f"[Ahead {self.count}]"
        return _LABELS[self.kind]

    @property
    def is_loading(self) -> bool:
        return self.kind is StatusKind.LOADING

    def __str__(self) -> str:
        return self.label


UNKNOWN = SyncStatus(StatusKind.UNKNOWN)
LOADING = SyncStatus(StatusKind.LOADING)
NOT_FOUND = SyncStatus(StatusKind.NOT_FOUND)
NOT_A_GIT_REPO = SyncStatus(StatusKind.NOT_A_GIT_REPO)
MODIFIED = SyncStatus(StatusKind.MODIFIED)
FETCH_FAILED = SyncStatus(StatusKind.FETCH_FAILED)
UP_TO_DATE = SyncStatus(StatusKind.UP_TO_DATE)
NO_REMOTE = SyncStatus(StatusKind.NO_REMOTE)


def classify_counts(ahead: int, behind: int) -> SyncStatus:
    """Map ahead/behind commit counts to a status.

    Behind wins whenever it is non-zero, so a diverged branch reports only
    ``[Behind N]``.
    """
    if behind > 0:
        return SyncStatus.behind(behind)
    if ahead > 0:
        return SyncStatus.ahead(ahead)
    return UP_TO_DATE
