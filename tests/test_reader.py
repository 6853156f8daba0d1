from datetime import timedelta

import pytest

from cctop.models import SessionStatus, StatusGroup
from cctop.reader import (
    context_line,
    display_name,
    format_tool_display,
    group_sessions,
    load_sessions,
    relative_time,
    sectioned,
    sort_sessions,
    source_label,
    status_counts,
    use_sections,
)

from conftest import NOW


class AllAlive:
    def is_alive(self, record):
        return record.session_id != "dead"


class TestLoadSessions:
    def test_filters_dead_and_sorts(self, store, make_record):
        store.put("1", make_record(session_id="idle", status=SessionStatus.IDLE))
        store.put("2", make_record(session_id="dead", status=SessionStatus.WORKING))
        store.put("3", make_record(session_id="perm", status=SessionStatus.WAITING_PERMISSION))
        assert [r.session_id for r in load_sessions(store, AllAlive())] == ["perm", "idle"]

    def test_excluded_projects(self, store, make_record):
        store.put("1", make_record(session_id="a", project_path="/w/secret"))
        store.put("2", make_record(session_id="b", project_path="/w/public"))
        sessions = load_sessions(store, AllAlive(), excluded_projects=["secret"])
        assert [r.session_id for r in sessions] == ["b"]

    def test_does_not_write(self, store, make_record):
        store.put("1", make_record(session_id="dead"))
        load_sessions(store, AllAlive())
        assert [k for k, _ in store.list()] == ["1"]

    def test_load_orders_by_urgency(self, store, make_record):
        store.put("1", make_record(session_id="perm", status=SessionStatus.WAITING_PERMISSION))
        store.put("2", make_record(session_id="work", status=SessionStatus.WORKING))
        store.put("3", make_record(session_id="idle", status=SessionStatus.IDLE))
        store.put("4", make_record(session_id="input", status=SessionStatus.WAITING_INPUT))
        assert [r.status for r in load_sessions(store, AllAlive())] == [
            SessionStatus.WAITING_PERMISSION,
            SessionStatus.WAITING_INPUT,
            SessionStatus.WORKING,
            SessionStatus.IDLE,
        ]

    def test_loaded_sections_keep_order_within_group(self, store, make_record):
        store.put("1", make_record(session_id="input", status=SessionStatus.WAITING_INPUT, age=1))
        store.put("2", make_record(session_id="work", status=SessionStatus.WORKING))
        store.put("3", make_record(session_id="perm", status=SessionStatus.WAITING_PERMISSION, age=60))
        store.put("4", make_record(session_id="idle", status=SessionStatus.IDLE))
        layout = sectioned(load_sessions(store, AllAlive()))
        assert [(g, [r.status for r in rs]) for g, rs in layout] == [
            (StatusGroup.NEEDS_ATTENTION, [SessionStatus.WAITING_PERMISSION, SessionStatus.WAITING_INPUT]),
            (StatusGroup.ACTIVE, [SessionStatus.WORKING]),
            (StatusGroup.IDLE, [SessionStatus.IDLE]),
        ]

    def test_missing_store(self, tmp_path):
        from cctop.store import SessionStore
        assert load_sessions(SessionStore(tmp_path / "missing"), AllAlive()) == []


class TestSortSessions:
    def test_status_order(self, make_record):
        records = [make_record(session_id=s.value, status=s) for s in SessionStatus]
        ordered = [r.status for r in sort_sessions(records)]
        assert ordered[0] is SessionStatus.WAITING_PERMISSION
        assert ordered[-1] is SessionStatus.IDLE
        assert ordered.index(SessionStatus.WORKING) < ordered.index(SessionStatus.COMPACTING)

    def test_recent_first_within_status(self, make_record):
        old = make_record(session_id="old", status=SessionStatus.WORKING, age=600)
        new = make_record(session_id="new", status=SessionStatus.WORKING, age=10)
        assert [r.session_id for r in sort_sessions([old, new])] == ["new", "old"]


class TestSections:
    def test_grouped_when_mixed(self, make_record):
        records = sort_sessions([
            make_record(session_id="w1", status=SessionStatus.WORKING),
            make_record(session_id="p", status=SessionStatus.WAITING_PERMISSION),
            make_record(session_id="w2", status=SessionStatus.WORKING, age=5),
            make_record(session_id="i", status=SessionStatus.IDLE),
        ])
        layout = sectioned(records)
        assert [(g, [r.session_id for r in rs]) for g, rs in layout] == [
            (StatusGroup.NEEDS_ATTENTION, ["p"]),
            (StatusGroup.ACTIVE, ["w1", "w2"]),
            (StatusGroup.IDLE, ["i"]),
        ]

    def test_flat_when_single_group(self, make_record):
        records = [make_record(session_id=str(i)) for i in range(3)]
        assert not use_sections(records)
        assert sectioned(records) == [(None, records)]

    def test_flat_when_too_few(self, make_record):
        records = [
            make_record(session_id="a", status=SessionStatus.WORKING),
            make_record(session_id="b", status=SessionStatus.IDLE),
        ]
        assert not use_sections(records)

    def test_empty(self):
        assert sectioned([]) == []

    def test_group_sessions_skips_empty_groups(self, make_record):
        records = [make_record(status=SessionStatus.IDLE), make_record(status=SessionStatus.COMPACTING)]
        assert [g for g, _ in group_sessions(records)] == [StatusGroup.ACTIVE, StatusGroup.IDLE]

    def test_status_counts(self, make_record):
        counts = status_counts([
            make_record(status=SessionStatus.WAITING_INPUT),
            make_record(status=SessionStatus.WORKING),
            make_record(status=SessionStatus.COMPACTING),
        ])
        assert counts == {StatusGroup.NEEDS_ATTENTION: 1, StatusGroup.ACTIVE: 2, StatusGroup.IDLE: 0}


class TestToolDisplay:
    @pytest.mark.parametrize("tool, detail, expected", [
        ("Bash", "npm test", "Running: npm test"),
        ("Edit", "/a/b/auth.ts", "Editing auth.ts"),
        ("Write", "/a/new.py", "Writing new.py"),
        ("Read", "README.md", "Reading README.md"),
        ("Grep", "TODO", "Searching: TODO"),
        ("WebSearch", "textual docs", "Searching: textual docs"),
        ("Glob", "**/*.py", "Finding: **/*.py"),
        ("WebFetch", "https://example.com", "Fetching: https://example.com"),
        ("Task", "explore repo", "Task: explore repo"),
        ("mcp__github", "list prs", "mcp__github: list prs"),
        ("bash", "ls", "Running: ls"),
        ("Bash", None, "Bash..."),
        ("Edit", "", "Edit..."),
    ])
    def test_phrases(self, tool, detail, expected):
        assert format_tool_display(tool, detail) == expected

    def test_detail_truncated(self):
        assert format_tool_display("Bash", "x" * 100) == "Running: " + "x" * 30


class TestContextLine:
    def test_idle(self, make_record):
        assert context_line(make_record(status=SessionStatus.IDLE, last_prompt="hi")) is None

    def test_compacting(self, make_record):
        assert context_line(make_record(status=SessionStatus.COMPACTING)) == "Compacting context..."

    def test_permission_with_message(self, make_record):
        record = make_record(status=SessionStatus.WAITING_PERMISSION, notification_message="Bash: rm x")
        assert context_line(record) == "Bash: rm x"

    def test_permission_without_message(self, make_record):
        assert context_line(make_record(status=SessionStatus.WAITING_PERMISSION)) == "Permission needed"

    def test_waiting_input_shows_prompt(self, make_record):
        record = make_record(status=SessionStatus.WAITING_INPUT, last_prompt="a" * 50)
        assert context_line(record) == '"' + "a" * 36 + '"'

    def test_waiting_input_without_prompt(self, make_record):
        assert context_line(make_record(status=SessionStatus.WAITING_INPUT)) is None

    def test_working_with_tool(self, make_record):
        record = make_record(status=SessionStatus.WORKING, last_tool="Edit", last_tool_detail="/a/b/auth.ts")
        assert context_line(record) == "Editing auth.ts"

    def test_working_falls_back_to_prompt(self, make_record):
        record = make_record(status=SessionStatus.WORKING, last_prompt="fix it")
        assert context_line(record) == '"fix it"'


class TestRelativeTime:
    @pytest.mark.parametrize("seconds, expected", [
        (0, "0s ago"),
        (59, "59s ago"),
        (125, "2m ago"),
        (3599, "59m ago"),
        (7200, "2h ago"),
        (90000, "1d ago"),
    ])
    def test_buckets(self, seconds, expected):
        assert relative_time(NOW - timedelta(seconds=seconds), now=NOW) == expected

    def test_future_timestamp(self):
        assert relative_time(NOW + timedelta(seconds=30), now=NOW) == "just now"


class TestLabels:
    def test_display_name_prefers_session_name(self, make_record):
        assert display_name(make_record(session_name="auth refactor")) == "auth refactor"

    def test_display_name_project(self, make_record):
        assert display_name(make_record()) == "project"

    def test_display_name_session_id(self, make_record):
        assert display_name(make_record(session_id="0123456789abcdef", project_path="")) == "0123456789ab"

    def test_source_label(self, make_record):
        assert source_label(make_record(source="opencode")) == "OC"
        assert source_label(make_record()) == "CC"
