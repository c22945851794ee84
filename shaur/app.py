"""Interactive menu loop.

Every screen follows the same cycle: build lines from an engine snapshot,
redraw only when the snapshot, scroll position, or terminal size changed, then
wait for a key with a bounded timeout. The loop never waits on the background
refresh; it only re-reads the store after each timeout.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Callable, Sequence
from os import terminal_size

from .actions import ActionReport, ActionRunner, RepoAction, build_command
from .config import Settings, load_last_selected, save_last_selected
from .descriptor import descriptor_path, read_descriptor_info
from .engine.discovery import Repository
from .engine.service import StatusEngine
from .errors import GitCommandError
from .highlight import render_file
from .input import read_key
from .render import (
    Palette,
    RepositoryDetails,
    batch_menu_lines,
    directory_size,
    fit_lines,
    format_size,
    main_menu_lines,
    navigator_lines,
    repository_action_lines,
    repository_info_lines,
    repository_list_lines,
)
from .terminal import TerminalController

logger = logging.getLogger(__name__)

ACTION_KEYS = {
    "1": RepoAction.PULL,
    "2": RepoAction.BUILD,
    "3": RepoAction.CLEAN,
    "4": RepoAction.ALL,
}
QUIT_KEYS = frozenset({"q", "Q", "ESC"})
# Batch actions that stop after each repository to ask whether to continue.
PAUSING_ACTIONS = frozenset({RepoAction.BUILD, RepoAction.ALL})
# The information screen runs git on the UI thread, so its lookups get a short deadline.
DETAILS_GIT_TIMEOUT_SECONDS = 2.0


class ShaurApp:
    def __init__(
        self,
        engine: StatusEngine,
        settings: Settings,
        terminal: TerminalController,
        stdin_fd: int,
        palette: Palette,
        *,
        color_enabled: bool = True,
        read_key_fn: Callable[[int, int | None], str] = read_key,
        terminal_size_fn: Callable[[], terminal_size] = lambda: shutil.get_terminal_size((80, 24)),
        runner: ActionRunner | None = None,
    ) -> None:
        self.engine = engine
        self.settings = settings
        self.terminal = terminal
        self.stdin_fd = stdin_fd
        self.palette = palette
        self.color_enabled = color_enabled
        self._read_key = read_key_fn
        self._terminal_size = terminal_size_fn
        self.runner = runner if runner is not None else ActionRunner(
            settings,
            announce=self._announce,
            run=self._run_in_foreground,
        )
        self._build_label = build_command(settings).display

    def run(self) -> None:
        with self.terminal.menu_mode():
            self.main_menu()
        self.terminal.clear()

    # -- terminal plumbing -------------------------------------------------

    def _poll_ms(self) -> int:
        return max(1, int(self.settings.poll_interval * 1000))

    def _next_key(self) -> str:
        return self._read_key(self.stdin_fd, self._poll_ms())

    def _draw(self, lines: Sequence[str]) -> None:
        size = self._terminal_size()
        self.terminal.clear()
        self.terminal.write("\n".join(fit_lines(lines, size.columns)) + "\n")

    def _announce(self, text: str) -> None:
        self.terminal.write(text + "\n")

    def _wait_for_key(self, prompt: str) -> str:
        self.terminal.write("\n" + self.palette.paint(self.palette.cyan, prompt) + "\n")
        return self._read_key(self.stdin_fd, None)

    def _run_in_foreground(self, *args, **kwargs) -> subprocess.CompletedProcess:
        with self.terminal.suspended():
            return subprocess.run(*args, **kwargs)

    # -- screens -----------------------------------------------------------

    def main_menu(self) -> None:
        drawn: object = None
        repositories = self.engine.list_repositories()
        while True:
            state = (self.engine.change_version, self._terminal_size())
            if state != drawn:
                self._draw(
                    main_menu_lines(
                        len(repositories),
                        self.engine.without_descriptor,
                        self.engine.progress_snapshot(),
                        self.palette,
                    )
                )
                drawn = state

            key = self._next_key()
            if not key:
                continue
            if key in {"4", "q", "Q"}:
                return
            if key == "1":
                self.list_repositories()
            elif key == "2":
                self.batch_menu()
            elif key == "3":
                self.navigate()
            elif key in {"r", "R"}:
                self.engine.request_full_refresh()
            drawn = None

    def _pager(self, header: Sequence[str], produce_body: Callable[[], list[str]], footer: str) -> None:
        """Scrollable view; arrows/space/page keys scroll, any other key leaves."""
        offset = 0
        drawn: object = None
        while True:
            size = self._terminal_size()
            body = produce_body()
            visible = max(1, size.lines - len(header) - 3)
            max_offset = max(0, len(body) - visible)
            offset = max(0, min(offset, max_offset))
            state = (self.engine.change_version, offset, size)
            if state != drawn:
                footer_lines = ["", self.palette.paint(self.palette.cyan, footer)]
                self._draw([*header, *body[offset : offset + visible], *footer_lines])
                drawn = state

            key = self._next_key()
            if not key:
                continue
            if key in {"DOWN", "j"}:
                offset += 1
            elif key in {"UP", "k"}:
                offset -= 1
            elif key in {"PAGE_DOWN", "SPACE"}:
                offset += visible
            elif key == "PAGE_UP":
                offset -= visible
            elif key == "HOME":
                offset = 0
            elif key == "END":
                offset = max_offset
            else:
                return

    def list_repositories(self) -> None:
        repositories = self.engine.list_repositories()
        header = [
            self.palette.paint(self.palette.green, f"List of {len(repositories)} repositories:"),
            "",
        ]
        self._pager(
            header,
            lambda: repository_list_lines(repositories, self.engine.statuses(), self.palette),
            "Press any key to return to menu... (↑/↓ to scroll)",
        )

    def batch_menu(self) -> None:
        while True:
            self._draw(batch_menu_lines(self.palette, self._build_label))
            key = self._read_key(self.stdin_fd, None)
            if key in {"5", *QUIT_KEYS}:
                return
            action = ACTION_KEYS.get(key)
            if action is not None:
                self.run_batch(action)

    def run_batch(self, action: RepoAction) -> list[ActionReport]:
        self.terminal.clear()
        self._announce(
            self.palette.paint(
                self.palette.green,
                f"Executing {self.runner.describe(action)} on all repositories...",
            )
        )
        self._announce("")

        def after_each(report: ActionReport) -> bool:
            self._announce("")
            if action not in PAUSING_ACTIONS:
                return True
            key = self._wait_for_key(
                "Continue with next repository? (Press any key to continue, q to return to menu)"
            )
            return key not in {"q", "Q"}

        reports = self.runner.run_batch(action, self.engine.list_repositories(), after_each)
        # Several working trees may have moved; one fresh pass covers them all.
        self.engine.request_full_refresh()
        self._announce(self.palette.paint(self.palette.green, "Operation completed."))
        self._wait_for_key("Press any key to return to menu...")
        return reports

    def navigate(self) -> None:
        repositories = self.engine.list_repositories()
        names = [repo.name for repo in repositories]
        last = load_last_selected()
        index = names.index(last) if last in names else 0
        drawn: object = None
        while True:
            repo = repositories[index]
            state = (self.engine.change_version, index, self._terminal_size())
            if state != drawn:
                self._draw(
                    navigator_lines(
                        index,
                        repositories,
                        self.engine.current_status(repo.name),
                        self.engine.progress_snapshot(),
                        self.palette,
                    )
                )
                drawn = state

            key = self._next_key()
            if not key:
                continue
            if key in {"RIGHT", "DOWN", "l", "j"}:
                index = (index + 1) % len(repositories)
            elif key in {"LEFT", "UP", "h", "k"}:
                index = (index - 1) % len(repositories)
            elif key == "ENTER":
                save_last_selected(repo.name)
                self.repository_menu(repo)
                drawn = None
            elif key in QUIT_KEYS:
                return

    def gather_details(self, repo: Repository) -> RepositoryDetails:
        if not repo.path.is_dir():
            return RepositoryDetails(exists=False)
        client = self.engine.client
        try:
            branch = client.current_branch(repo.path, timeout_seconds=DETAILS_GIT_TIMEOUT_SECONDS)
        except GitCommandError as exc:
            logger.debug("branch lookup failed for %s: %s", repo.name, exc)
            branch = None
        return RepositoryDetails(
            exists=True,
            size=format_size(directory_size(repo.path)),
            last_commit=client.last_commit_relative_date(
                repo.path, timeout_seconds=DETAILS_GIT_TIMEOUT_SECONDS
            ),
            branch=branch,
            descriptor=read_descriptor_info(repo.path),
        )

    def repository_menu(self, repo: Repository) -> None:
        details = self.gather_details(repo)
        drawn: object = None
        while True:
            state = (self.engine.change_version, self._terminal_size())
            if state != drawn:
                self._draw(
                    [
                        *repository_info_lines(
                            repo,
                            self.engine.current_status(repo.name),
                            details,
                            self.palette,
                        ),
                        *repository_action_lines(repo, self.palette, self._build_label),
                    ]
                )
                drawn = state

            key = self._next_key()
            if not key:
                continue
            action = ACTION_KEYS.get(key)
            if action is not None:
                self.run_single(action, repo)
                details = self.gather_details(repo)
            elif key == "5":
                self.view_descriptor(repo)
            elif key in {"r", "R"}:
                self.engine.request_single_refresh(repo.name)
            elif key == "6" or key in QUIT_KEYS:
                return
            drawn = None

    def run_single(self, action: RepoAction, repo: Repository) -> ActionReport:
        self.terminal.clear()
        self._announce(
            self.palette.paint(self.palette.blue, f"=== {repo.name}: {self.runner.describe(action)} ===")
        )
        report = self.runner.run(action, repo)
        self.engine.request_single_refresh(repo.name)

        if report.error:
            self._announce(self.palette.paint(self.palette.red, report.error))
        elif report.ok:
            self._announce(self.palette.paint(self.palette.green, "Operation completed."))
        else:
            failed = ", ".join(
                f"{outcome.command.display} ({outcome.returncode})"
                for outcome in report.outcomes
                if not outcome.ok
            )
            self._announce(self.palette.paint(self.palette.yellow, f"Finished with errors: {failed}"))
        self._wait_for_key("Press any key to return to actions...")
        return report

    def view_descriptor(self, repo: Repository) -> None:
        path = descriptor_path(repo.path)
        if not path.is_file():
            self.terminal.clear()
            self._announce(self.palette.paint(self.palette.red, "No PKGBUILD found in this repository"))
            self._wait_for_key("Press any key to return to actions...")
            return
        lines = render_file(path, self.settings.style, no_color=not self.color_enabled)
        header = [self.palette.paint(self.palette.green, f"PKGBUILD of {repo.name}"), ""]
        self._pager(header, lambda: lines, "Press any key to return... (↑/↓ to scroll)")


def run_app(
    engine: StatusEngine,
    settings: Settings,
    palette: Palette,
    stdin_fd: int,
    stdout_fd: int,
    color_enabled: bool,
) -> None:
    terminal = TerminalController(stdin_fd, stdout_fd)
    ShaurApp(
        engine,
        settings,
        terminal,
        stdin_fd,
        palette,
        color_enabled=color_enabled,
    ).run()
