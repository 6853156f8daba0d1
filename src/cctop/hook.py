"""cctop-hook: apply one Claude Code hook event to the session's record.

Claude Code runs ``cctop-hook <HookName>`` with the event JSON on stdin. The
hook's parent process is the Claude Code session, so its pid is the record's
identity key. The hook always exits 0 so it can never block the session.
"""

from __future__ import annotations

import json
import logging
import os
import select
import subprocess
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from cctop.config import Config
from cctop.errors import WriteFailure
from cctop.history import HistoryStore
from cctop.liveness import LivenessOracle, process_start_time
from cctop.logs import HOOK_LOGGER, configure_error_logging, configure_hook_logging, remove_session_log
from cctop.models import SessionRecord, TerminalInfo, extract_project_name, utc_now
from cctop.store import SessionStore, sanitize_key
from cctop.transcript import find_workspace_file, lookup_session_name
from cctop.transitions import HookEvent, next_status

logger = logging.getLogger(__name__)
events_log = logging.getLogger(HOOK_LOGGER)

VERSION = "0.3.0"
MAX_TOOL_DETAIL_LEN = 120
STDIN_TIMEOUT = 5.0

TOOL_DETAIL_FIELDS = {
    "Bash": "command",
    "Edit": "file_path",
    "Write": "file_path",
    "Read": "file_path",
    "Grep": "pattern",
    "Glob": "pattern",
    "WebFetch": "url",
    "WebSearch": "query",
    "Task": "description",
}

HELP = """\
cctop-hook {version}
Claude Code hook handler for cctop session tracking.

Reads hook event JSON from stdin and updates session files in ~/.cctop/sessions/.

USAGE:
    cctop-hook <HOOK_NAME>

HOOK NAMES:
    SessionStart, UserPromptSubmit, PreToolUse, PostToolUse,
    Stop, Notification, PermissionRequest, PreCompact, SessionEnd

OPTIONS:
    -h, --help       Print this help message
    -V, --version    Print version
"""


@dataclass
class HookInput:
    session_id: str
    cwd: str
    hook_event_name: str = ""
    transcript_path: str | None = None
    prompt: str | None = None
    tool_name: str | None = None
    tool_input: dict[str, str] = field(default_factory=dict)
    notification_type: str | None = None
    message: str | None = None
    title: str | None = None

    @staticmethod
    def from_dict(data: dict[str, Any]) -> HookInput:
        if not isinstance(data, dict):
            raise ValueError("hook payload must be a JSON object")
        session_id = data.get("session_id")
        cwd = data.get("cwd")
        if not isinstance(session_id, str) or not isinstance(cwd, str):
            raise ValueError("hook payload needs string session_id and cwd")

        def opt(key: str) -> str | None:
            value = data.get(key)
            return value if isinstance(value, str) else None

        # tool_input mixes value types; only the string fields are ever shown
        raw_input = data.get("tool_input")
        tool_input = {
            k: v for k, v in raw_input.items() if isinstance(v, str)
        } if isinstance(raw_input, dict) else {}

        return HookInput(
            session_id=session_id,
            cwd=cwd,
            hook_event_name=opt("hook_event_name") or "",
            transcript_path=opt("transcript_path"),
            prompt=opt("prompt"),
            tool_name=opt("tool_name"),
            tool_input=tool_input,
            notification_type=opt("notification_type"),
            message=opt("message"),
            title=opt("title"),
        )


def extract_tool_detail(tool_name: str, tool_input: dict[str, str] | None) -> str | None:
    """Pick the most telling input field for a tool, capped in length."""
    if not tool_input:
        return None
    key = TOOL_DETAIL_FIELDS.get(tool_name)
    if key is None:
        return None
    value = tool_input.get(key)
    if not value:
        return None
    if len(value) > MAX_TOOL_DETAIL_LEN:
        return value[: MAX_TOOL_DETAIL_LEN - 3] + "..."
    return value


def capture_terminal_info(env: dict[str, str] | None = None) -> TerminalInfo:
    env = os.environ if env is None else env
    return TerminalInfo(
        program=env.get("TERM_PROGRAM", ""),
        terminal_session_id=env.get("ITERM_SESSION_ID") or env.get("KITTY_WINDOW_ID"),
        tty=env.get("TTY"),
    )


def get_current_branch(cwd: str) -> str:
    try:
        result = subprocess.run(
            ["git", "-C", cwd, "branch", "--show-current"],
            capture_output=True, text=True, timeout=2,
        )
    except (subprocess.TimeoutExpired, OSError):
        return "unknown"
    branch = result.stdout.strip()
    if result.returncode != 0 or not branch:
        return "unknown"
    return branch


def session_label(cwd: str, session_id: str) -> str:
    return f"{extract_project_name(cwd) or '?'}:{session_id[:8]}"


class HookHandler:
    """Applies hook events for the session hosted by one process."""

    def __init__(
        self,
        store: SessionStore,
        oracle: LivenessOracle | None = None,
        pid: int | None = None,
        pid_start_time: float | None = None,
        clock: Callable[[], datetime] = utc_now,
        branch_lookup: Callable[[str], str] = get_current_branch,
        terminal: TerminalInfo | None = None,
        tolerance: float = 2.0,
        history: HistoryStore | None = None,
    ) -> None:
        self._store = store
        self._oracle = oracle or LivenessOracle()
        self._pid = pid
        self._pid_start_time = pid_start_time
        self._clock = clock
        self._branch_lookup = branch_lookup
        self._terminal = terminal
        self._tolerance = tolerance
        self._history = history

    def identity_key(self, inp: HookInput) -> str:
        if self._pid is not None:
            return str(self._pid)
        return sanitize_key(inp.session_id)

    def handle(self, hook_name: str, inp: HookInput) -> SessionRecord | None:
        """Update and persist the record for this event.

        Returns the written record, or None when the event writes nothing.
        Raises WriteFailure if the store cannot be written.
        """
        event = HookEvent.parse(hook_name, inp.notification_type)
        # Liveness checks own cleanup; SessionEnd leaves the record untouched
        if event is HookEvent.SESSION_END:
            return None

        key = self.identity_key(inp)
        if not key:
            logger.error("%s: session id %r is empty after sanitizing", hook_name, inp.session_id)
            return None

        record = self._load_or_create(key, inp)
        old_status = record.status
        new_status = next_status(event)
        if new_status is not None:
            record.status = new_status

        record.last_activity = self._clock()
        record.branch = self._branch_lookup(inp.cwd)
        record.terminal = self._terminal or capture_terminal_info()

        if event is HookEvent.SESSION_START:
            self._handle_session_start(key, record, inp)
        elif event is HookEvent.USER_PROMPT_SUBMIT:
            record.clear_activity()
            if inp.prompt is not None:
                record.last_prompt = inp.prompt
        elif event is HookEvent.PRE_TOOL_USE:
            if inp.tool_name:
                record.last_tool = inp.tool_name
                record.last_tool_detail = extract_tool_detail(inp.tool_name, inp.tool_input)
        elif event is HookEvent.PERMISSION_REQUEST:
            record.notification_message = self._permission_message(inp)
            record.last_tool = None
            record.last_tool_detail = None
        elif event in (
            HookEvent.NOTIFICATION_IDLE,
            HookEvent.NOTIFICATION_PERMISSION,
            HookEvent.NOTIFICATION_OTHER,
        ):
            record.last_tool = None
            record.last_tool_detail = None
            if inp.message is not None:
                record.notification_message = inp.message
        elif event is HookEvent.STOP:
            record.clear_activity()

        name = lookup_session_name(inp.transcript_path, inp.session_id)
        if name:
            record.session_name = name
        if record.workspace_file is None and record.project_path:
            record.workspace_file = find_workspace_file(record.project_path)

        self._store.put(key, record)
        note = " preserved" if new_status is None else ""
        events_log.info(
            "HOOK %s %s %s -> %s%s",
            hook_name, session_label(inp.cwd, inp.session_id),
            old_status.value, record.status.value, note,
        )
        return record

    def _load_or_create(self, key: str, inp: HookInput) -> SessionRecord:
        existing = self._store.get(key)
        if existing is not None and self._is_reused_pid(existing):
            logger.info("pid %s was reused; replacing session %s", key, existing.session_id)
            existing = None

        if existing is None:
            return SessionRecord(
                session_id=inp.session_id,
                project_path=inp.cwd,
                last_activity=self._clock(),
                started_at=self._clock(),
                terminal=self._terminal,
                pid=self._pid,
                pid_start_time=self._pid_start_time if self._pid is not None else None,
            )

        if existing.session_id != inp.session_id:
            # Claude Code reassigns the session id on resume; same process, same record
            logger.info("session %s resumed as %s", existing.session_id, inp.session_id)
            existing.session_id = inp.session_id
        if existing.pid is None and self._pid is not None:
            existing.pid = self._pid
            existing.pid_start_time = self._pid_start_time
        return existing

    def _is_reused_pid(self, existing: SessionRecord) -> bool:
        if existing.pid != self._pid or existing.pid_start_time is None:
            return False
        if self._pid_start_time is None:
            return False
        return abs(existing.pid_start_time - self._pid_start_time) > self._tolerance

    def _handle_session_start(self, key: str, record: SessionRecord, inp: HookInput) -> None:
        record.clear_activity()
        for other_key, other in self._store.list():
            if other_key == key:
                continue
            same_session = other.pid is None and other.session_id == inp.session_id
            dead_sibling = other.project_path == inp.cwd and not self._oracle.is_alive(other)
            if same_session or dead_sibling:
                if dead_sibling and self._history is not None:
                    self._history.archive(other)
                self._store.delete(other_key)
                remove_session_log(other_key)
                logger.info("Removed stale session %s (%s)", other_key, other.session_id)

    @staticmethod
    def _permission_message(inp: HookInput) -> str | None:
        if inp.title:
            return inp.title
        if not inp.tool_name:
            return None
        detail = extract_tool_detail(inp.tool_name, inp.tool_input)
        return f"{inp.tool_name}: {detail}" if detail else inp.tool_name


def read_stdin(timeout: float = STDIN_TIMEOUT) -> str | None:
    """Read the whole payload, giving up if nothing arrives within ``timeout``."""
    try:
        ready, _, _ = select.select([sys.stdin], [], [], timeout)
    except (OSError, ValueError) as e:
        logger.error("failed to wait on stdin: %s", e)
        return None
    if not ready:
        logger.error("stdin read timed out after %.0fs", timeout)
        return None
    try:
        return sys.stdin.read()
    except OSError as e:
        logger.error("failed to read stdin: %s", e)
        return None


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if args and args[0] in ("--version", "-V"):
        print(f"cctop-hook {VERSION}")
        return 0
    if args and args[0] in ("--help", "-h"):
        print(HELP.format(version=VERSION), end="")
        return 0

    configure_error_logging()
    if not args:
        logger.error("missing hook name argument")
        return 0
    hook_name = args[0]

    raw = read_stdin()
    if raw is None:
        return 0
    try:
        inp = HookInput.from_dict(json.loads(raw))
    except (json.JSONDecodeError, ValueError) as e:
        logger.error("%s: failed to parse hook JSON: %s", hook_name, e)
        return 0

    config = Config.load()
    pid = os.getppid()
    handler = HookHandler(
        SessionStore.default(),
        oracle=LivenessOracle.from_config(config),
        pid=pid,
        pid_start_time=process_start_time(pid),
        tolerance=config.pid_start_tolerance,
        history=HistoryStore.default(),
    )
    key = handler.identity_key(inp)
    if key:
        configure_hook_logging(key)
    try:
        handler.handle(hook_name, inp)
    except WriteFailure as e:
        # Dropping one update is fine; the next event rewrites the whole record
        logger.error("%s: %s", hook_name, e)
    return 0


if __name__ == "__main__":
    sys.exit(main())
