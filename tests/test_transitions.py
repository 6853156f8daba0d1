import pytest

from cctop.models import SessionStatus
from cctop.transitions import TRANSITIONS, HookEvent, apply_event, dot_diagram, next_status

EXPECTED = {
    HookEvent.SESSION_START: SessionStatus.IDLE,
    HookEvent.USER_PROMPT_SUBMIT: SessionStatus.WORKING,
    HookEvent.PRE_TOOL_USE: SessionStatus.WORKING,
    HookEvent.POST_TOOL_USE: SessionStatus.WORKING,
    HookEvent.STOP: SessionStatus.IDLE,
    HookEvent.NOTIFICATION_IDLE: SessionStatus.WAITING_INPUT,
    HookEvent.PERMISSION_REQUEST: SessionStatus.WAITING_PERMISSION,
    HookEvent.PRE_COMPACT: SessionStatus.COMPACTING,
}

NO_OPS = [
    HookEvent.NOTIFICATION_PERMISSION,
    HookEvent.NOTIFICATION_OTHER,
    HookEvent.SESSION_END,
    HookEvent.UNKNOWN,
]


class TestTransitionTable:
    def test_table(self):
        assert TRANSITIONS == EXPECTED

    @pytest.mark.parametrize("event, target", list(EXPECTED.items()))
    @pytest.mark.parametrize("current", list(SessionStatus))
    def test_transition_ignores_current_status(self, current, event, target):
        assert apply_event(current, event) is target

    @pytest.mark.parametrize("event", NO_OPS)
    @pytest.mark.parametrize("current", list(SessionStatus))
    def test_no_op_preserves_status(self, current, event):
        assert next_status(event) is None
        assert apply_event(current, event) is current

    def test_late_permission_notification_keeps_working(self):
        status = apply_event(SessionStatus.IDLE, HookEvent.PERMISSION_REQUEST)
        status = apply_event(status, HookEvent.POST_TOOL_USE)
        status = apply_event(status, HookEvent.NOTIFICATION_PERMISSION)
        assert status is SessionStatus.WORKING


class TestHookEventParse:
    @pytest.mark.parametrize("name, event", [
        ("SessionStart", HookEvent.SESSION_START),
        ("UserPromptSubmit", HookEvent.USER_PROMPT_SUBMIT),
        ("PreToolUse", HookEvent.PRE_TOOL_USE),
        ("PostToolUse", HookEvent.POST_TOOL_USE),
        ("Stop", HookEvent.STOP),
        ("PermissionRequest", HookEvent.PERMISSION_REQUEST),
        ("PreCompact", HookEvent.PRE_COMPACT),
        ("SessionEnd", HookEvent.SESSION_END),
        ("SubagentStop", HookEvent.UNKNOWN),
        ("", HookEvent.UNKNOWN),
    ])
    def test_hook_names(self, name, event):
        assert HookEvent.parse(name) is event

    @pytest.mark.parametrize("kind, event", [
        ("idle_prompt", HookEvent.NOTIFICATION_IDLE),
        ("permission_prompt", HookEvent.NOTIFICATION_PERMISSION),
        ("auth_success", HookEvent.NOTIFICATION_OTHER),
        (None, HookEvent.NOTIFICATION_OTHER),
    ])
    def test_notification_types(self, kind, event):
        assert HookEvent.parse("Notification", kind) is event

    def test_notification_value_is_not_a_hook_name(self):
        assert HookEvent.parse("Notification(idle)") is HookEvent.UNKNOWN


def test_dot_diagram():
    dot = dot_diagram()
    assert dot.startswith("digraph cctop {")
    assert dot.rstrip().endswith("}")
    assert 'any -> waiting_permission [label="PermissionRequest"];' in dot
    assert "Notification(permission)" in dot.splitlines()[-2]
