"""Hook events and the status transition table each writer applies."""

from __future__ import annotations

from enum import Enum

from cctop.models import SessionStatus


class HookEvent(Enum):
    SESSION_START = "SessionStart"
    USER_PROMPT_SUBMIT = "UserPromptSubmit"
    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    STOP = "Stop"
    NOTIFICATION_IDLE = "Notification(idle)"
    NOTIFICATION_PERMISSION = "Notification(permission)"
    NOTIFICATION_OTHER = "Notification(other)"
    PERMISSION_REQUEST = "PermissionRequest"
    PRE_COMPACT = "PreCompact"
    SESSION_END = "SessionEnd"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, hook_name: str, notification_type: str | None = None) -> HookEvent:
        if hook_name == "Notification":
            if notification_type == "idle_prompt":
                return cls.NOTIFICATION_IDLE
            if notification_type == "permission_prompt":
                return cls.NOTIFICATION_PERMISSION
            return cls.NOTIFICATION_OTHER
        return _BY_HOOK_NAME.get(hook_name, cls.UNKNOWN)


_BY_HOOK_NAME = {
    e.value: e
    for e in HookEvent
    if not e.value.startswith("Notification") and e is not HookEvent.UNKNOWN
}

# Events absent from this table are no-ops: the stored status is left as is.
# Notification(permission) is one of them on purpose: PermissionRequest has
# already set WAITING_PERMISSION, and the notification for the same prompt
# arrives seconds later, after a quick approval may have moved us to WORKING.
TRANSITIONS: dict[HookEvent, SessionStatus] = {
    HookEvent.SESSION_START: SessionStatus.IDLE,
    HookEvent.USER_PROMPT_SUBMIT: SessionStatus.WORKING,
    HookEvent.PRE_TOOL_USE: SessionStatus.WORKING,
    HookEvent.POST_TOOL_USE: SessionStatus.WORKING,
    HookEvent.STOP: SessionStatus.IDLE,
    HookEvent.NOTIFICATION_IDLE: SessionStatus.WAITING_INPUT,
    HookEvent.PERMISSION_REQUEST: SessionStatus.WAITING_PERMISSION,
    HookEvent.PRE_COMPACT: SessionStatus.COMPACTING,
}


def next_status(event: HookEvent) -> SessionStatus | None:
    """Status to write after ``event``, or None to keep the stored status."""
    return TRANSITIONS.get(event)


def apply_event(current: SessionStatus, event: HookEvent) -> SessionStatus:
    new = next_status(event)
    return current if new is None else new


def dot_diagram() -> str:
    """Render the transition table as a Graphviz digraph."""
    lines = [
        "digraph cctop {",
        "    rankdir=LR;",
        '    node [shape=box, style=rounded, fontname="Helvetica"];',
    ]
    for status in SessionStatus:
        if status is SessionStatus.NEEDS_ATTENTION:
            continue
        lines.append(f'    {status.value} [label="{status.value}"];')
    for event, status in TRANSITIONS.items():
        lines.append(f'    any -> {status.value} [label="{event.value}"];')
    noops = [e.value for e in HookEvent if e not in TRANSITIONS]
    lines.append("    any [shape=point];")
    lines.append(f'    // no-op: {", ".join(noops)}')
    lines.append("}")
    return "\n".join(lines)
