"""Foreground pull/build/clean commands run on behalf of the user.

These are the only operations that mutate a working tree. They are opaque to
the status engine: the caller re-probes the repository once they finish.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from .config import Settings
from .engine.discovery import Repository

logger = logging.getLogger(__name__)


class RepoAction(Enum):
    PULL = "pull"
    BUILD = "build"
    CLEAN = "clean"
    ALL = "all"


@dataclass(frozen=True)
class ActionCommand:
    argv: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)

    @property
    def display(self) -> str:
        assignments = [f"{key}={shlex.quote(value)}" for key, value in self.env.items()]
        return " ".join([*assignments, *(shlex.quote(part) for part in self.argv)])


@dataclass(frozen=True)
class CommandOutcome:
    command: ActionCommand
    returncode: int | None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True)
class ActionReport:
    repo: Repository
    action: RepoAction
    outcomes: tuple[CommandOutcome, ...]
    skipped_build: bool = False
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error and all(outcome.ok for outcome in self.outcomes)


PULL_COMMAND = ActionCommand(argv=("git", "pull"))
CLEAN_COMMAND = ActionCommand(argv=("git", "clean", "-dfx"))
NO_DESCRIPTOR_MESSAGE = "No PKGBUILD found, cannot execute makepkg."


def build_command(settings: Settings) -> ActionCommand:
    return ActionCommand(argv=tuple(settings.build_command), env=dict(settings.build_env))


def commands_for(action: RepoAction, repo: Repository, settings: Settings) -> list[ActionCommand]:
    """Commands making up ``action`` for ``repo``; build is left out without a PKGBUILD."""
    build = [build_command(settings)] if repo.has_descriptor else []
    if action is RepoAction.PULL:
        return [PULL_COMMAND]
    if action is RepoAction.BUILD:
        return build
    if action is RepoAction.CLEAN:
        return [CLEAN_COMMAND]
    return [PULL_COMMAND, *build, CLEAN_COMMAND]


RunFn = Callable[..., subprocess.CompletedProcess]


class ActionRunner:
    """Run action commands in a repository with the terminal inherited.

    ``announce`` receives progress lines (headers, skip notices); command
    output itself goes straight to the inherited stdout/stderr.
    """

    def __init__(
        self,
        settings: Settings,
        announce: Callable[[str], None],
        run: RunFn = subprocess.run,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.settings = settings
        self.announce = announce
        self._run = run
        self._which = which

    def _execute(self, repo: Repository, command: ActionCommand) -> CommandOutcome:
        if self._which(command.argv[0]) is None:
            message = f"{command.argv[0]} is not installed."
            logger.warning("%s: %s", repo.name, message)
            self.announce(message)
            return CommandOutcome(command=command, returncode=None, message=message)

        logger.info("%s: running %s", repo.name, command.display)
        env = {**os.environ, **command.env}
        try:
            proc = self._run(list(command.argv), cwd=repo.path, env=env, check=False)
        except OSError as exc:
            message = f"Failed to run {command.display}: {exc}"
            logger.error("%s: %s", repo.name, message)
            self.announce(message)
            return CommandOutcome(command=command, returncode=None, message=message)

        if proc.returncode != 0:
            logger.warning("%s: %s exited with %d", repo.name, command.display, proc.returncode)
        return CommandOutcome(command=command, returncode=proc.returncode)

    def run(self, action: RepoAction, repo: Repository) -> ActionReport:
        if not repo.path.is_dir():
            message = "Failed to change to repository directory."
            self.announce(message)
            return ActionReport(repo=repo, action=action, outcomes=(), error=message)

        commands = commands_for(action, repo, self.settings)
        skipped_build = not repo.has_descriptor and action in {RepoAction.BUILD, RepoAction.ALL}
        outcomes: list[CommandOutcome] = []
        for command in commands:
            if action is RepoAction.ALL:
                self.announce(f"Executing {command.display}...")
            outcomes.append(self._execute(repo, command))
            if action is RepoAction.ALL and command is PULL_COMMAND and skipped_build:
                self.announce(NO_DESCRIPTOR_MESSAGE)
        if skipped_build and action is RepoAction.BUILD:
            self.announce(NO_DESCRIPTOR_MESSAGE)
        return ActionReport(
            repo=repo,
            action=action,
            outcomes=tuple(outcomes),
            skipped_build=skipped_build,
        )

    def run_batch(
        self,
        action: RepoAction,
        repositories: Sequence[Repository],
        after_each: Callable[[ActionReport], bool],
    ) -> list[ActionReport]:
        """Run ``action`` over ``repositories`` in order.

        ``after_each`` is called with each report and returns ``False`` to stop.
        """
        reports: list[ActionReport] = []
        for repo in repositories:
            self.announce(f"=== {repo.name}: {self.describe(action)} ===")
            report = self.run(action, repo)
            reports.append(report)
            if not after_each(report):
                break
        return reports

    def describe(self, action: RepoAction) -> str:
        if action is RepoAction.PULL:
            return PULL_COMMAND.display
        if action is RepoAction.BUILD:
            return build_command(self.settings).display
        if action is RepoAction.CLEAN:
            return CLEAN_COMMAND.display
        return "pull, makepkg, clean"
