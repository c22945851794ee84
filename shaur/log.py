"""Logging setup for the ``shaur`` logger tree.

The terminal belongs to the menu UI, so records go to a file under the
user log directory instead of stdout. Modules log through
``logging.getLogger(__name__)``, which places them under ``shaur``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from platformdirs import user_log_dir

from .config import APP_NAME

LOGGER_NAME = "shaur"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DEFAULT_LOG_DIR = Path(user_log_dir(APP_NAME, appauthor=False))


def default_log_file() -> Path:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return DEFAULT_LOG_DIR / f"shaur_{timestamp}.log"


def setup_logging(log_file: Path | None = None, level: int = logging.INFO) -> Path:
    """Attach a file handler to the ``shaur`` logger and return the log path.

    Calling it again replaces the previous handler.
    """
    log_path = log_file if log_file is not None else default_log_file()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    logger.info("log file: %s", log_path)
    return log_path
