"""Reader pipeline: load live sessions, order them, and describe them briefly.

Shared by the TUI and the ``--list`` CLI. Nothing here writes to the store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from cctop.liveness import LivenessOracle
from cctop.models import SessionRecord, SessionStatus, StatusGroup, utc_now
from cctop.store import SessionStore

PROMPT_SNIPPET_LEN = 36
TOOL_DETAIL_LEN = 30
SECTION_MIN_SESSIONS = 3

GROUP_ORDER = (StatusGroup.NEEDS_ATTENTION, StatusGroup.ACTIVE, StatusGroup.IDLE)


def load_sessions(
    store: SessionStore,
    oracle: LivenessOracle,
    excluded_projects: Iterable[str] = (),
) -> list[SessionRecord]:
    """All live records in display order."""
    excluded = set(excluded_projects)
    live = [
        record for _key, record in store.list()
        if record.project_name not in excluded and oracle.is_alive(record)
    ]
    return sort_sessions(live)


def sort_sessions(records: Iterable[SessionRecord]) -> list[SessionRecord]:
    """Most urgent status first; most recent activity first within a status."""
    return sorted(
        records,
        key=lambda r: (r.status.sort_order, -r.last_activity.timestamp()),
    )


def group_sessions(records: list[SessionRecord]) -> list[tuple[StatusGroup, list[SessionRecord]]]:
    """Split sorted records into non-empty groups in fixed group order."""
    buckets: dict[StatusGroup, list[SessionRecord]] = {g: [] for g in GROUP_ORDER}
    for record in records:
        buckets[record.status.group].append(record)
    return [(g, buckets[g]) for g in GROUP_ORDER if buckets[g]]


def use_sections(records: list[SessionRecord]) -> bool:
    groups = {r.status.group for r in records}
    return len(records) >= SECTION_MIN_SESSIONS and len(groups) >= 2


def sectioned(records: list[SessionRecord]) -> list[tuple[StatusGroup | None, list[SessionRecord]]]:
    """Records laid out for display: grouped sections, or one untitled flat list."""
    if use_sections(records):
        return list(group_sessions(records))
    return [(None, list(records))] if records else []


def display_name(record: SessionRecord) -> str:
    return record.session_name or record.project_name or record.session_id[:12]


def source_label(record: SessionRecord) -> str:
    return "OC" if record.source == "opencode" else "CC"


def _file_name(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1] or path


def format_tool_display(tool: str, detail: str | None) -> str:
    """Short phrase for the tool a working session is running.

    Bash + "npm test" -> "Running: npm test"
    Edit + "/src/auth.ts" -> "Editing auth.ts"
    """
    if not detail:
        return f"{tool}..."
    short = detail[:TOOL_DETAIL_LEN]
    name = tool.lower()
    if name == "bash":
        return f"Running: {short}"
    if name == "edit":
        return f"Editing {_file_name(detail)}"
    if name == "write":
        return f"Writing {_file_name(detail)}"
    if name == "read":
        return f"Reading {_file_name(detail)}"
    if name in ("grep", "websearch"):
        return f"Searching: {short}"
    if name == "glob":
        return f"Finding: {short}"
    if name == "webfetch":
        return f"Fetching: {short}"
    if name == "task":
        return f"Task: {short}"
    return f"{tool}: {short}"


def prompt_snippet(record: SessionRecord) -> str | None:
    if record.last_prompt is None:
        return None
    return f'"{record.last_prompt[:PROMPT_SNIPPET_LEN]}"'


def context_line(record: SessionRecord) -> str | None:
    status = record.status
    if status is SessionStatus.IDLE:
        return None
    if status is SessionStatus.COMPACTING:
        return "Compacting context..."
    if status is SessionStatus.WAITING_PERMISSION:
        if record.notification_message is not None:
            return record.notification_message
        return "Permission needed"
    if status in (SessionStatus.WAITING_INPUT, SessionStatus.NEEDS_ATTENTION):
        return prompt_snippet(record)
    if record.last_tool:
        return format_tool_display(record.last_tool, record.last_tool_detail)
    return prompt_snippet(record)


def relative_time(timestamp: datetime, now: datetime | None = None) -> str:
    delta = ((now or utc_now()) - timestamp).total_seconds()
    if delta < 0:
        return "just now"
    seconds = int(delta)
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def status_counts(records: Iterable[SessionRecord]) -> dict[StatusGroup, int]:
    counts = {g: 0 for g in GROUP_ORDER}
    for record in records:
        counts[record.status.group] += 1
    return counts
