from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def extract_project_name(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1] if path else ""


class StatusGroup(Enum):
    NEEDS_ATTENTION = "Needs Attention"
    ACTIVE = "Active"
    IDLE = "Idle"


class SessionStatus(Enum):
    IDLE = "idle"
    WORKING = "working"
    COMPACTING = "compacting"
    WAITING_PERMISSION = "waiting_permission"
    WAITING_INPUT = "waiting_input"
    NEEDS_ATTENTION = "needs_attention"

    @classmethod
    def parse(cls, raw: str) -> SessionStatus:
        """Decode a stored status string without ever failing.

        Names written by a newer or different writer fall back to
        NEEDS_ATTENTION when they look like a waiting state, else WORKING.
        """
        try:
            return cls(raw)
        except ValueError:
            return cls.NEEDS_ATTENTION if "waiting" in raw else cls.WORKING

    @property
    def sort_order(self) -> int:
        return _SORT_ORDER[self]

    @property
    def needs_attention(self) -> bool:
        return self in (
            SessionStatus.WAITING_PERMISSION,
            SessionStatus.WAITING_INPUT,
            SessionStatus.NEEDS_ATTENTION,
        )

    @property
    def group(self) -> StatusGroup:
        if self.needs_attention:
            return StatusGroup.NEEDS_ATTENTION
        if self in (SessionStatus.WORKING, SessionStatus.COMPACTING):
            return StatusGroup.ACTIVE
        return StatusGroup.IDLE


_SORT_ORDER = {
    SessionStatus.WAITING_PERMISSION: 0,
    SessionStatus.WAITING_INPUT: 1,
    SessionStatus.NEEDS_ATTENTION: 1,
    SessionStatus.WORKING: 2,
    SessionStatus.COMPACTING: 3,
    SessionStatus.IDLE: 4,
}


@dataclass
class TerminalInfo:
    program: str = ""
    terminal_session_id: str | None = None   # iTerm2 / kitty window id
    tty: str | None = None


@dataclass
class SessionRecord:
    session_id: str
    project_path: str = ""
    project_name: str = ""
    branch: str = "unknown"
    status: SessionStatus = SessionStatus.IDLE
    last_prompt: str | None = None
    last_activity: datetime = field(default_factory=utc_now)
    started_at: datetime = field(default_factory=utc_now)
    terminal: TerminalInfo | None = None
    pid: int | None = None
    pid_start_time: float | None = None
    last_tool: str | None = None
    last_tool_detail: str | None = None
    notification_message: str | None = None
    session_name: str | None = None
    source: str | None = None
    workspace_file: str | None = None
    ended_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.project_path and not self.project_name:
            self.project_name = extract_project_name(self.project_path)

    @property
    def identity_key(self) -> str:
        """Storage key: the hosting pid when known, else the session id."""
        if self.pid is not None:
            return str(self.pid)
        from cctop.store import sanitize_key
        return sanitize_key(self.session_id)

    @property
    def effective_end(self) -> datetime:
        """When an archived session ended; last activity if that was never recorded."""
        return self.ended_at or self.last_activity

    def clear_activity(self) -> None:
        self.last_tool = None
        self.last_tool_detail = None
        self.notification_message = None
