"""Textual TUI listing live Claude Code sessions from the shared sessions directory."""

from __future__ import annotations

import asyncio
import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.timer import Timer
from textual.widgets import ListView, Static

from cctop.config import Config
from cctop.errors import StoreUnavailable
from cctop.focus import focus_session
from cctop.history import HistoryStore
from cctop.liveness import LivenessOracle
from cctop.logs import remove_session_log
from cctop.models import SessionRecord, StatusGroup
from cctop.reader import load_sessions, sectioned, status_counts
from cctop.store import SessionStore
from cctop.watcher import SessionWatcher
from cctop.widgets.session_card import SessionList

logger = logging.getLogger(__name__)

LOGO = "[#E8A55D]▐▛███▜▌\n▝▜█████▛▘\n▘▘ ▝▝[/]"


class CctopApp(App):
    TITLE = "cctop"

    CSS = """
    #header-bar {
        height: auto;
        padding: 0 1;
        margin-bottom: 1;
    }
    #empty-state {
        padding: 1 2;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("c", "cleanup", "Clean up dead sessions"),
    ]

    def __init__(
        self,
        store: SessionStore | None = None,
        config: Config | None = None,
        oracle: LivenessOracle | None = None,
        history: HistoryStore | None = None,
    ) -> None:
        super().__init__()
        self._config = config or Config.load()
        self._store = store or SessionStore.default()
        self._oracle = oracle or LivenessOracle.from_config(self._config)
        self._history = history or HistoryStore.default()
        self._stop_watching = asyncio.Event()
        self._poll_timer: Timer | None = None

    def compose(self) -> ComposeResult:
        yield Static(f"{LOGO}\ncctop", id="header-bar")
        with VerticalScroll(id="main-scroll"):
            yield Static("No active sessions", id="empty-state")
            yield SessionList(id="session-list")

    def on_mount(self) -> None:
        try:
            self._store.ensure_root()
        except StoreUnavailable as e:
            logger.warning("Sessions directory unavailable, watching disabled: %s", e)
        self._refresh_list()
        self._poll_timer = self.set_interval(self._config.poll_interval, self._refresh_list)
        self.run_worker(self._watch_store(), group="watch", exclusive=True)

    async def _watch_store(self) -> None:
        """Rescan as soon as a session file changes; polling covers the rest."""
        watcher = SessionWatcher(self._store.root)
        try:
            async for _changed in watcher.changes(self._stop_watching):
                self._refresh_list()
        except (OSError, RuntimeError) as e:
            logger.warning("File watching unavailable, polling only: %s", e)

    def _refresh_list(self) -> None:
        sessions = load_sessions(self._store, self._oracle, self._config.excluded_projects)
        self.query_one("#session-list", SessionList).refresh_sessions(sectioned(sessions))
        self.query_one("#empty-state", Static).display = not sessions
        self._update_header(sessions)

    def _update_header(self, sessions: list[SessionRecord]) -> None:
        counts = status_counts(sessions)
        parts = [f"cctop ({len(sessions)})"]
        if counts[StatusGroup.NEEDS_ATTENTION]:
            parts.append(f"[#c97070]{counts[StatusGroup.NEEDS_ATTENTION]} need attention[/]")
        if counts[StatusGroup.ACTIVE]:
            parts.append(f"[#7dba6d]{counts[StatusGroup.ACTIVE]} working[/]")
        if counts[StatusGroup.IDLE]:
            parts.append(f"{counts[StatusGroup.IDLE]} idle")
        self.query_one("#header-bar", Static).update(f"{LOGO}\n{' | '.join(parts)}")

    def action_refresh(self) -> None:
        self._refresh_list()

    def action_cleanup(self) -> None:
        removed = self._store.prune(self._oracle, self._history)
        for key in removed:
            remove_session_log(key)
        self.notify(f"Removed {len(removed)} dead session(s)")
        self._refresh_list()

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        session = self.query_one("#session-list", SessionList).get_selected_session()
        if session is not None:
            self._focus(session)

    def _focus(self, session: SessionRecord) -> None:
        self.run_worker(self._focus_async(session), group="focus")

    async def _focus_async(self, session: SessionRecord) -> None:
        if not await focus_session(session, self._config):
            self.notify(
                f"Could not focus {session.project_name or session.session_id}",
                severity="warning",
            )

    def _stop(self) -> None:
        self._stop_watching.set()
        if self._poll_timer is not None:
            self._poll_timer.stop()

    def on_unmount(self) -> None:
        self._stop()

    async def action_quit(self) -> None:
        self._stop()
        self.exit()


def main(config: Config | None = None, store: SessionStore | None = None) -> None:
    CctopApp(store=store, config=config).run()


if __name__ == "__main__":
    main()
