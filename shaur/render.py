"""Color palette and menu screen builders.

Builders return plain lists of lines and never touch the terminal, so every
screen can be asserted on directly in tests.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .ansi import clip_ansi_line
from .descriptor import DescriptorInfo
from .engine.discovery import Repository
from .engine.status import StatusKind, SyncStatus
from .engine.store import ProgressSnapshot

APP_TITLE = "Shaur - AUR Repository Manager"
NAME_COLUMN_WIDTH = 40

_COLOR_TERMS = ("xterm", "rxvt", "screen", "tmux", "linux", "vt100", "ansi")


@dataclass(frozen=True)
class Palette:
    """Semantic ANSI colors; every field is empty when color is off."""

    reset: str
    green: str
    yellow: str
    red: str
    blue: str
    cyan: str
    gray: str

    def paint(self, color: str, text: str) -> str:
        if not color:
            return text
        return f"{color}{text}{self.reset}"


COLOR_PALETTE = Palette(
    reset="\033[0m",
    green="\033[0;32m",
    yellow="\033[0;33m",
    red="\033[0;31m",
    blue="\033[0;34m",
    cyan="\033[0;36m",
    gray="\033[0;37m",
)

PLAIN_PALETTE = Palette(reset="", green="", yellow="", red="", blue="", cyan="", gray="")


def detect_color_support(environ: Mapping[str, str] | None = None, isatty: bool | None = None) -> bool:
    """Decide whether stdout should receive ANSI colors.

    ``NO_COLOR`` and ``TERM=dumb`` always win. Otherwise stdout must be a tty
    and either advertise true color or use a common color-capable ``TERM``.
    """
    env = os.environ if environ is None else environ
    term = env.get("TERM", "")
    if env.get("NO_COLOR") or term == "dumb":
        return False
    if isatty is None:
        isatty = sys.stdout.isatty()
    if not isatty:
        return False
    if env.get("COLORTERM") in {"truecolor", "24bit"}:
        return True
    return "color" in term or term.startswith(_COLOR_TERMS)


def palette_for(color_enabled: bool) -> Palette:
    return COLOR_PALETTE if color_enabled else PLAIN_PALETTE


def status_color(status: SyncStatus, palette: Palette) -> str:
    return {
        StatusKind.UP_TO_DATE: palette.green,
        StatusKind.BEHIND: palette.red,
        StatusKind.AHEAD: palette.yellow,
        StatusKind.MODIFIED: palette.yellow,
        StatusKind.LOADING: palette.blue,
        StatusKind.NO_REMOTE: palette.gray,
    }.get(status.kind, "")


def colored_status(status: SyncStatus, palette: Palette) -> str:
    return palette.paint(status_color(status, palette), status.label)


def format_size(num_bytes: int) -> str:
    """Human-readable size in the style of ``du -h`` (``4.0K``, ``12M``)."""
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            if unit == "B":
                return f"{int(size)}B"
            return f"{size:.1f}{unit}" if size < 10 else f"{size:.0f}{unit}"
        size /= 1024
    return f"{size:.0f}T"


def directory_size(path: Path) -> int:
    """Total size of regular files below ``path``; unreadable entries are skipped."""
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path, onerror=lambda _exc: None):
        for filename in filenames:
            try:
                total += os.lstat(os.path.join(dirpath, filename)).st_size
            except OSError:
                continue
    return total


def fit_lines(lines: Sequence[str], columns: int) -> list[str]:
    return [clip_ansi_line(line, columns) for line in lines]


def banner_lines(version: str, build_dir: Path, color_enabled: bool, palette: Palette) -> list[str]:
    return [
        palette.paint(palette.green, "Shaur - Simple Helper for AUR packages"),
        palette.paint(palette.blue, f"Version: {version}"),
        f"Repository: {build_dir}",
        "Color support: " + (palette.paint(palette.green, "Enabled") if color_enabled else "Disabled"),
        "",
    ]


def progress_line(progress: ProgressSnapshot, palette: Palette) -> str:
    if progress.complete:
        return palette.paint(palette.green, "Repository statuses: Loaded")
    return palette.paint(
        palette.yellow,
        f"Repository statuses: Loading... ({progress.done}/{progress.total})",
    )


def main_menu_lines(
    repo_count: int,
    without_descriptor: int,
    progress: ProgressSnapshot,
    palette: Palette,
) -> list[str]:
    return [
        palette.paint(palette.green, APP_TITLE),
        palette.paint(palette.blue, f"({repo_count} repos found, {without_descriptor} without PKGBUILD)"),
        progress_line(progress, palette),
        "",
        palette.paint(palette.cyan, "Available actions:"),
        "1. List all repositories",
        "2. Select all repositories",
        "3. Select a specific repository",
        "4. Exit",
        "",
        palette.paint(palette.cyan, "Press a key to select an option... (r refreshes all statuses)"),
    ]


def repository_row(
    repo: Repository,
    status: SyncStatus,
    palette: Palette,
    prefix: str,
) -> str:
    row = f"{prefix}{repo.name:<{NAME_COLUMN_WIDTH}} {colored_status(status, palette)}"
    if not repo.has_descriptor:
        row += palette.paint(palette.red, "   (no PKGBUILD)")
    return row


def repository_list_lines(
    repositories: Sequence[Repository],
    statuses: Mapping[str, SyncStatus],
    palette: Palette,
) -> list[str]:
    return [
        repository_row(repo, statuses[repo.name], palette, prefix=f"{index:3d}. ")
        for index, repo in enumerate(repositories, start=1)
    ]


def batch_menu_lines(palette: Palette, build_label: str) -> list[str]:
    return [
        palette.paint(palette.green, "Select an action for all repositories:"),
        "",
        "1. git pull",
        f"2. {build_label}",
        "3. git clean -dfx",
        "4. Execute all actions (pull, makepkg, clean)",
        "5. Return to main menu",
        "",
        palette.paint(palette.cyan, "Press a key to select an option..."),
    ]


def navigator_lines(
    index: int,
    repositories: Sequence[Repository],
    status: SyncStatus,
    progress: ProgressSnapshot,
    palette: Palette,
) -> list[str]:
    repo = repositories[index]
    return [
        palette.paint(palette.green, f"Repository navigation ({index + 1}/{len(repositories)})"),
        progress_line(progress, palette),
        "",
        palette.paint(palette.cyan, "Use arrows ← → to navigate"),
        palette.paint(palette.cyan, "Enter to select, q to quit"),
        "",
        repository_row(repo, status, palette, prefix="→ "),
    ]


@dataclass(frozen=True)
class RepositoryDetails:
    """Slow-to-compute facts for the information screen, gathered once per visit."""

    exists: bool
    size: str | None = None
    last_commit: str | None = None
    branch: str | None = None
    descriptor: DescriptorInfo | None = None


def repository_info_lines(
    repo: Repository,
    status: SyncStatus,
    details: RepositoryDetails,
    palette: Palette,
) -> list[str]:
    lines = [
        palette.paint(palette.green, f"Repository information: {repo.name}"),
        colored_status(status, palette),
        palette.paint(palette.blue, "------------------------"),
    ]
    if not details.exists:
        lines.append(palette.paint(palette.red, "Repository directory not found!"))
        return lines

    lines.append(f"Repository size: {details.size or 'N/A'}")
    lines.append(f"Last commit: {details.last_commit or 'N/A'}")
    if details.branch:
        lines.append(f"Current branch: {details.branch}")

    info = details.descriptor
    lines.append("")
    if info is None:
        lines.append(palette.paint(palette.red, "No PKGBUILD found in this repository"))
        return lines

    lines.append(palette.paint(palette.green, "PKGBUILD information:"))
    lines.append(palette.paint(palette.blue, "------------------------"))
    lines.append(f"Name: {info.pkgname}")
    if info.version is not None:
        lines.append(f"Version: {info.version}")
    lines.append(f"Description: {info.pkgdesc}")
    if info.depends:
        lines.append(f"Dependencies: {' '.join(info.depends)}")
    return lines


def repository_action_lines(repo: Repository, palette: Palette, build_label: str) -> list[str]:
    return [
        "",
        palette.paint(palette.green, f"=== Actions for repository {repo.name} ==="),
        "",
        "1. git pull",
        f"2. {build_label}",
        "3. git clean -dfx",
        "4. Execute all actions (pull, makepkg, clean)",
        "5. View PKGBUILD",
        "6. Return to repository selection",
        "",
        palette.paint(palette.cyan, "Press a key to select an option... (r re-checks status)"),
    ]
