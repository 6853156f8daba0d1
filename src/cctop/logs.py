"""Logging setup for the hook writer and the CLI.

The hook runs once per event in a short-lived process, so it attaches plain
file handlers: one per-session transition log and one shared error log.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

from cctop.config import logs_dir

HOOK_LOGGER = "cctop.hook.events"
ERROR_LOG_NAME = "_errors.log"

_FORMAT = "%(asctime)s %(message)s"


class _UTCFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")
        self.converter = time.gmtime


def session_log_path(key: str, root: Path | None = None) -> Path:
    return (root or logs_dir()) / f"{key}.log"


def configure_hook_logging(key: str, root: Path | None = None) -> logging.Logger:
    """Route hook transition lines to the session's log and errors to _errors.log."""
    directory = root or logs_dir()
    directory.mkdir(parents=True, exist_ok=True)
    formatter = _UTCFormatter()

    events = logging.getLogger(HOOK_LOGGER)
    events.setLevel(logging.INFO)
    events.propagate = False
    for handler in list(events.handlers):
        events.removeHandler(handler)
        handler.close()
    session_handler = logging.FileHandler(session_log_path(key, directory))
    session_handler.setFormatter(formatter)
    events.addHandler(session_handler)

    configure_error_logging(directory)
    return events


def configure_error_logging(root: Path | None = None) -> None:
    directory = root or logs_dir()
    directory.mkdir(parents=True, exist_ok=True)
    cctop_logger = logging.getLogger("cctop")
    error_path = directory / ERROR_LOG_NAME
    for handler in cctop_logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == error_path:
            return
    handler = logging.FileHandler(error_path)
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    cctop_logger.addHandler(handler)


def remove_session_log(key: str, root: Path | None = None) -> None:
    try:
        session_log_path(key, root).unlink(missing_ok=True)
    except OSError:
        pass


def configure_cli_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
