"""User configuration loaded from ~/.cctop/config.json."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

SESSIONS_DIR_ENV = "CCTOP_SESSIONS_DIR"


def cctop_home() -> Path:
    return Path.home() / ".cctop"


def config_path() -> Path:
    return cctop_home() / "config.json"


def sessions_dir() -> Path:
    """Sessions directory, overridable via CCTOP_SESSIONS_DIR for test isolation."""
    override = os.environ.get(SESSIONS_DIR_ENV)
    if override:
        return Path(override)
    return cctop_home() / "sessions"


def logs_dir() -> Path:
    return cctop_home() / "logs"


def history_dir() -> Path:
    return cctop_home() / "history"


@dataclass
class EditorConfig:
    process_name: str = "Code"
    cli_command: str = "code"


@dataclass
class Config:
    editor: EditorConfig = field(default_factory=EditorConfig)
    poll_interval: float = 2.0
    pid_start_tolerance: float = 2.0
    no_pid_max_age_hours: float = 4.0
    excluded_projects: list[str] = field(default_factory=list)

    @staticmethod
    def from_dict(data: dict) -> Config:
        editor = data.get("editor")
        if not isinstance(editor, dict):
            editor = {}
        excluded = data.get("excluded_projects", [])
        if not isinstance(excluded, list):
            raise ValueError("excluded_projects must be a list")
        defaults = Config()
        return Config(
            editor=EditorConfig(
                process_name=editor.get("process_name", defaults.editor.process_name),
                cli_command=editor.get("cli_command", defaults.editor.cli_command),
            ),
            poll_interval=float(data.get("poll_interval", defaults.poll_interval)),
            pid_start_tolerance=float(data.get("pid_start_tolerance", defaults.pid_start_tolerance)),
            no_pid_max_age_hours=float(data.get("no_pid_max_age_hours", defaults.no_pid_max_age_hours)),
            excluded_projects=[str(p) for p in excluded],
        )

    @staticmethod
    def load(path: Path | None = None) -> Config:
        path = path or config_path()
        if not path.exists():
            return Config()
        try:
            data = json.loads(path.read_text())
            if not isinstance(data, dict):
                raise ValueError("top-level value must be an object")
            return Config.from_dict(data)
        except (json.JSONDecodeError, OSError, AttributeError, TypeError, ValueError) as e:
            logger.warning("Invalid config in %s: %s, using defaults", path, e)
            return Config()
