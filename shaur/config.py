"""Persistent JSON config helpers.

Stores the build directory, probing knobs, build command, and the last
repository picked in the navigator. All access is defensive: malformed or
missing config falls back to defaults.
"""

from __future__ import annotations

import json
import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "shaur"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
BUILD_DIR_ENV = "SHAUR_BUILD_DIR"

DEFAULT_BUILD_DIR = Path.home() / "builds"
DEFAULT_WORKERS = 1
DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_GIT_TIMEOUT = 10.0
MAX_POLL_INTERVAL = 0.5
DEFAULT_STYLE = "monokai"
DEFAULT_BUILD_COMMAND = ("makepkg", "-sirc")
DEFAULT_BUILD_ENV = {"PKGEXT": ".pkg.tar"}


@dataclass(frozen=True)
class Settings:
    """Effective runtime settings after merging config, environment, and CLI."""

    build_dir: Path = DEFAULT_BUILD_DIR
    workers: int = DEFAULT_WORKERS
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    git_timeout: float = DEFAULT_GIT_TIMEOUT
    poll_interval: float = MAX_POLL_INTERVAL
    style: str = DEFAULT_STYLE
    build_command: tuple[str, ...] = DEFAULT_BUILD_COMMAND
    build_env: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_BUILD_ENV))

    def with_overrides(self, **overrides: object) -> Settings:
        """Return a copy with every non-``None`` override applied."""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are ignored; losing a preference is never fatal.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        pass


def _positive_number(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value) if value > 0 else default


def _positive_int(value: object, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value if value >= 1 else default


def _non_empty_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _build_command(value: object) -> tuple[str, ...]:
    if isinstance(value, list) and value and all(isinstance(part, str) and part for part in value):
        return tuple(value)
    text = _non_empty_str(value)
    if text is None:
        return DEFAULT_BUILD_COMMAND
    try:
        parts = shlex.split(text)
    except ValueError:
        return DEFAULT_BUILD_COMMAND
    return tuple(parts) if parts else DEFAULT_BUILD_COMMAND


def _build_env(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return dict(DEFAULT_BUILD_ENV)
    return {key: item for key, item in value.items() if isinstance(key, str) and isinstance(item, str)}


def clamp_poll_interval(value: float) -> float:
    """Keep UI redraw polling within ``(0, 0.5]`` seconds."""
    if value <= 0:
        return MAX_POLL_INTERVAL
    return min(MAX_POLL_INTERVAL, value)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from the config file and ``SHAUR_BUILD_DIR``."""
    env = os.environ if environ is None else environ
    data = load_config()

    build_dir_text = _non_empty_str(env.get(BUILD_DIR_ENV)) or _non_empty_str(data.get("build_dir"))
    build_dir = Path(build_dir_text).expanduser() if build_dir_text else DEFAULT_BUILD_DIR

    return Settings(
        build_dir=build_dir,
        workers=_positive_int(data.get("workers"), DEFAULT_WORKERS),
        fetch_timeout=_positive_number(data.get("fetch_timeout"), DEFAULT_FETCH_TIMEOUT),
        git_timeout=_positive_number(data.get("git_timeout"), DEFAULT_GIT_TIMEOUT),
        poll_interval=clamp_poll_interval(_positive_number(data.get("poll_interval"), MAX_POLL_INTERVAL)),
        style=_non_empty_str(data.get("style")) or DEFAULT_STYLE,
        build_command=_build_command(data.get("build_command")),
        build_env=_build_env(data.get("build_env")),
    )


def load_last_selected() -> str | None:
    """Name of the repository last opened from the navigator, if any."""
    return _non_empty_str(load_config().get("last_selected"))


def save_last_selected(repo_name: str) -> None:
    name = str(repo_name).strip()
    if not name:
        return
    config = load_config()
    config["last_selected"] = name
    save_config(config)
