"""cctop: monitor Claude Code sessions across projects.

With no options the Textual TUI starts. The other modes print once and exit.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict

from rich.console import Console
from rich.markup import escape

from cctop.config import Config, config_path
from cctop.history import HistoryStore
from cctop.hook import VERSION
from cctop.liveness import LivenessOracle
from cctop.logs import configure_cli_logging, remove_session_log
from cctop.models import SessionRecord, SessionStatus
from cctop.reader import context_line, display_name, load_sessions, relative_time
from cctop.store import SessionStore
from cctop.transitions import dot_diagram

STATUS_TAGS = {
    SessionStatus.WAITING_PERMISSION: ("PERMISSION", "bold red"),
    SessionStatus.WAITING_INPUT: ("WAITING", "yellow"),
    SessionStatus.NEEDS_ATTENTION: ("WAITING", "yellow"),
    SessionStatus.WORKING: ("WORKING", "green"),
    SessionStatus.COMPACTING: ("COMPACTING", "magenta"),
    SessionStatus.IDLE: ("IDLE", "dim"),
}


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cctop",
        description="Monitor Claude Code sessions across projects",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-l", "--list", action="store_true", help="Print live sessions and exit")
    mode.add_argument("--cleanup", action="store_true", help="Delete records of dead sessions and exit")
    mode.add_argument("--recent", action="store_true", help="Print recently ended projects and exit")
    mode.add_argument("--dot", action="store_true", help="Print the status transition graph in DOT format")
    mode.add_argument("--print-config", action="store_true", help="Print the effective configuration")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def format_session_line(record: SessionRecord) -> str:
    tag, style = STATUS_TAGS[record.status]
    branch = f" ({escape(record.branch)})" if record.branch and record.branch != "unknown" else ""
    return (
        f"[{style}]\\[{tag}][/] {escape(display_name(record))}{branch}"
        f" - {relative_time(record.last_activity)} [dim]id:{escape(record.session_id[:8])}[/]"
    )


def list_sessions(console: Console, store: SessionStore, oracle: LivenessOracle, config: Config) -> None:
    sessions = load_sessions(store, oracle, config.excluded_projects)
    if not sessions:
        console.print("No active sessions")
        return
    for record in sessions:
        console.print(format_session_line(record))
        context = context_line(record)
        if context:
            console.print(f"    {escape(context)}", style="dim")


def cleanup_sessions(
    console: Console, store: SessionStore, oracle: LivenessOracle, history: HistoryStore,
) -> int:
    removed = store.prune(oracle, history)
    for key in removed:
        remove_session_log(key)
    console.print(f"Cleaned up {len(removed)} stale session(s)")
    return len(removed)


def list_recent(
    console: Console, history: HistoryStore, store: SessionStore, oracle: LivenessOracle,
) -> None:
    active = {record.project_path for record in load_sessions(store, oracle)}
    projects = history.recent_projects(exclude_paths=active)
    if not projects:
        console.print("No recent projects")
        return
    for project in projects:
        branch = f" ({escape(project.last_branch)})" if project.last_branch != "unknown" else ""
        console.print(
            f"{escape(project.project_name)}{branch} - {relative_time(project.last_session_at)}"
            f" [dim]{escape(project.project_path)}[/]",
            highlight=False,
        )


def print_config(console: Console, config: Config) -> None:
    console.print(f"# {config_path()}", style="dim", highlight=False)
    console.print_json(json.dumps(asdict(config)))
    console.print(f"# sessions: {SessionStore.default().root}", style="dim", highlight=False)


def main(argv: list[str] | None = None) -> int:
    args = create_parser().parse_args(argv)
    configure_cli_logging(args.verbose)

    console = Console()
    if args.dot:
        print(dot_diagram())
        return 0

    config = Config.load()
    if args.print_config:
        print_config(console, config)
        return 0

    store = SessionStore.default()
    oracle = LivenessOracle.from_config(config)
    if args.list:
        list_sessions(console, store, oracle, config)
        return 0
    if args.recent:
        list_recent(console, HistoryStore.default(), store, oracle)
        return 0
    if args.cleanup:
        cleanup_sessions(console, store, oracle, HistoryStore.default())
        return 0

    from cctop.app import main as run_tui

    run_tui(config=config, store=store)
    return 0


if __name__ == "__main__":
    sys.exit(main())
