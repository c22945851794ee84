"""Command-line front door for shaur.

Parses CLI options, merges them over the persisted config, discovers the
build directory, and starts the background status refresh. Then dispatches
into the interactive menus, or prints a one-shot report with ``--list``.
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
from pathlib import Path

from . import __version__
from .config import Settings, load_settings
from .engine.discovery import discover_repositories
from .engine.service import StatusEngine
from .errors import NoRepositoriesFound, RootNotFound
from .git import GitClient
from .log import setup_logging
from .render import Palette, banner_lines, detect_color_support, palette_for, repository_list_lines

logger = logging.getLogger(__name__)

GIT_MISSING_MESSAGE = "Error: Git is not installed. Please install git to use this script."
# Upper bound on one wait in --list mode; the loop re-checks completion after each.
LIST_WAIT_SECONDS = 1.0


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _positive_float(value: str) -> float:
    """argparse type for positive second counts."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shaur",
        description="Manage git-backed AUR package build directories.",
    )
    parser.add_argument("--build-dir", type=Path, default=None, help="Directory holding the package checkouts.")
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=None,
        help="Repositories probed in parallel during a refresh (default: 1).",
    )
    parser.add_argument(
        "--fetch-timeout",
        type=_positive_float,
        default=None,
        help="Seconds before a git fetch is abandoned and reported as failed.",
    )
    parser.add_argument("--style", default=None, help="Pygments style name for the PKGBUILD viewer.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument("--list", action="store_true", help="Print every repository status once and exit.")
    parser.add_argument("--log-file", type=Path, default=None, help="Write the session log to this file.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_settings(args: argparse.Namespace, settings: Settings | None = None) -> Settings:
    base = settings if settings is not None else load_settings()
    return base.with_overrides(
        build_dir=args.build_dir.expanduser() if args.build_dir is not None else None,
        workers=args.workers,
        fetch_timeout=args.fetch_timeout,
        style=args.style,
    )


def print_report(engine: StatusEngine, palette: Palette) -> None:
    """Block until the first pass completes, then print one row per repository."""
    version = engine.change_version
    while engine.is_refreshing():
        version = engine.wait_for_change(version, LIST_WAIT_SECONDS)
    for line in repository_list_lines(engine.list_repositories(), engine.statuses(), palette):
        print(line)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and launch shaur on the configured build directory.

    Exits with a message when git is missing, the build directory does not
    exist, or it holds no git checkouts.
    """
    args = build_parser().parse_args(argv)
    settings = resolve_settings(args)
    log_path = setup_logging(args.log_file)

    color_enabled = not args.no_color and detect_color_support()
    palette = palette_for(color_enabled)

    if shutil.which("git") is None:
        raise SystemExit(palette.paint(palette.red, GIT_MISSING_MESSAGE))
    build_tool = settings.build_command[0]
    if shutil.which(build_tool) is None:
        print(palette.paint(palette.yellow, f"Warning: {build_tool} is not installed. Build actions will fail."))

    for line in banner_lines(__version__, settings.build_dir, color_enabled, palette):
        print(line)
    print(palette.paint(palette.blue, f"Searching for git repositories in {settings.build_dir}..."))

    try:
        discovery = discover_repositories(settings.build_dir)
        if not discovery.repositories:
            raise NoRepositoriesFound(settings.build_dir)
    except (RootNotFound, NoRepositoriesFound) as exc:
        logger.error("%s", exc)
        raise SystemExit(palette.paint(palette.red, f"Error: {exc}")) from exc

    print(
        palette.paint(
            palette.green,
            f"{len(discovery)} repositories found, {discovery.without_descriptor} without PKGBUILD.",
        )
    )
    print(palette.paint(palette.blue, "Loading repository statuses in background..."))
    logger.info("discovered %d repositories in %s", len(discovery), settings.build_dir)

    client = GitClient(timeout_seconds=settings.git_timeout, fetch_timeout_seconds=settings.fetch_timeout)
    engine = StatusEngine(discovery, client=client, workers=settings.workers)
    engine.request_full_refresh()

    try:
        if args.list or not sys.stdin.isatty():
            print_report(engine, palette)
        else:
            from .app import run_app

            run_app(engine, settings, palette, sys.stdin.fileno(), sys.stdout.fileno(), color_enabled)
    except KeyboardInterrupt:
        print()
    finally:
        engine.shutdown()
        logger.info("session ended, log at %s", log_path)


if __name__ == "__main__":
    main()
