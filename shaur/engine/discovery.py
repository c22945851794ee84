"""One-shot discovery of package repositories under the build directory."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..descriptor import descriptor_exists
from ..errors import RootNotFound

GIT_MARKER = ".git"


@dataclass(frozen=True)
class Repository:
    """A package-build directory; ``name`` is unique within one build root."""

    name: str
    path: Path
    has_descriptor: bool


@dataclass(frozen=True)
class DiscoveryResult:
    root: Path
    repositories: tuple[Repository, ...]

    @property
    def without_descriptor(self) -> int:
        return sum(1 for repo in self.repositories if not repo.has_descriptor)

    def __len__(self) -> int:
        return len(self.repositories)


def has_git_marker(path: Path) -> bool:
    return (path / GIT_MARKER).is_dir()


def discover_repositories(
    root: Path,
    descriptor_check: Callable[[Path], bool] = descriptor_exists,
) -> DiscoveryResult:
    """List immediate subdirectories of ``root`` that carry a ``.git`` directory.

    Entries are sorted by name. Plain files and directories without the marker
    are skipped silently. Raises ``RootNotFound`` when ``root`` is missing.
    """
    root = root.expanduser()
    if not root.is_dir():
        raise RootNotFound(root)

    repositories: list[Repository] = []
    for entry in root.iterdir():
        if not entry.is_dir() or not has_git_marker(entry):
            continue
        repositories.append(
            Repository(
                name=entry.name,
                path=entry,
                has_descriptor=descriptor_check(entry),
            )
        )

    repositories.sort(key=lambda repo: repo.name)
    return DiscoveryResult(root=root, repositories=tuple(repositories))
