"""JSON encoding and decoding of session records.

The on-disk layout is a flat JSON object with snake_case keys. Optional
fields are written as ``null`` and read back as ``None``; missing keys are
treated the same way so files written by older or alternate writers still
load. Unknown keys are ignored.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from cctop.errors import RecordCorrupt
from cctop.models import SessionRecord, SessionStatus, TerminalInfo

_OPTIONAL_STRINGS = (
    "last_prompt",
    "last_tool",
    "last_tool_detail",
    "notification_message",
    "session_name",
    "source",
    "workspace_file",
)


def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp, with or without fractional seconds."""
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def record_to_dict(record: SessionRecord) -> dict[str, Any]:
    terminal = None
    if record.terminal is not None:
        terminal = {
            "program": record.terminal.program,
            "session_id": record.terminal.terminal_session_id,
            "tty": record.terminal.tty,
        }
    data: dict[str, Any] = {
        "session_id": record.session_id,
        "project_path": record.project_path,
        "project_name": record.project_name,
        "branch": record.branch,
        "status": record.status.value,
        "last_prompt": record.last_prompt,
        "last_activity": format_timestamp(record.last_activity),
        "started_at": format_timestamp(record.started_at),
        "terminal": terminal,
        "pid": record.pid,
        "pid_start_time": record.pid_start_time,
        "ended_at": format_timestamp(record.ended_at) if record.ended_at else None,
    }
    for key in _OPTIONAL_STRINGS:
        data[key] = getattr(record, key)
    return data


def encode_record(record: SessionRecord) -> str:
    return json.dumps(record_to_dict(record), indent=2) + "\n"


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RecordCorrupt(f"{key} must be a string, got {type(value).__name__}")
    return value


def _terminal_from(value: Any) -> TerminalInfo | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise RecordCorrupt("terminal must be an object")
    return TerminalInfo(
        program=value.get("program") or "",
        terminal_session_id=_optional_str(value, "session_id"),
        tty=_optional_str(value, "tty"),
    )


def record_from_dict(data: dict[str, Any]) -> SessionRecord:
    if not isinstance(data, dict):
        raise RecordCorrupt("session file does not contain a JSON object")
    for required in ("session_id", "project_path", "status", "last_activity"):
        if not isinstance(data.get(required), str):
            raise RecordCorrupt(f"missing or invalid {required!r}")

    try:
        last_activity = parse_timestamp(data["last_activity"])
        started_raw = data.get("started_at")
        started_at = parse_timestamp(started_raw) if isinstance(started_raw, str) else last_activity
        ended_raw = data.get("ended_at")
        ended_at = parse_timestamp(ended_raw) if isinstance(ended_raw, str) else None
    except ValueError as e:
        raise RecordCorrupt(f"invalid timestamp: {e}") from e

    pid = data.get("pid")
    if pid is not None and (isinstance(pid, bool) or not isinstance(pid, int)):
        raise RecordCorrupt("pid must be an integer")
    pid_start_time = data.get("pid_start_time")
    if pid_start_time is not None:
        if isinstance(pid_start_time, bool) or not isinstance(pid_start_time, (int, float)):
            raise RecordCorrupt("pid_start_time must be a number")
        pid_start_time = float(pid_start_time)

    return SessionRecord(
        session_id=data["session_id"],
        project_path=data["project_path"],
        project_name=_optional_str(data, "project_name") or "",
        branch=data["branch"] if isinstance(data.get("branch"), str) else "unknown",
        status=SessionStatus.parse(data["status"]),
        last_prompt=_optional_str(data, "last_prompt"),
        last_activity=last_activity,
        started_at=started_at,
        terminal=_terminal_from(data.get("terminal")),
        pid=pid,
        pid_start_time=pid_start_time,
        last_tool=_optional_str(data, "last_tool"),
        last_tool_detail=_optional_str(data, "last_tool_detail"),
        notification_message=_optional_str(data, "notification_message"),
        session_name=_optional_str(data, "session_name"),
        source=_optional_str(data, "source"),
        workspace_file=_optional_str(data, "workspace_file"),
        ended_at=ended_at,
    )


def decode_record(text: str) -> SessionRecord:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise RecordCorrupt(f"invalid JSON: {e}") from e
    return record_from_dict(data)
