"""Card-based widgets for displaying live cctop sessions."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.css.query import NoMatches
from textual.widget import Widget
from textual.widgets import Label, ListItem, ListView

from cctop.models import SessionRecord, SessionStatus, StatusGroup
from cctop.reader import context_line, display_name, relative_time, source_label


STATUS_STYLE = {
    SessionStatus.WAITING_PERMISSION: ("PERMISSION", "permission"),
    SessionStatus.WAITING_INPUT: ("WAITING", "waiting"),
    SessionStatus.NEEDS_ATTENTION: ("WAITING", "waiting"),
    SessionStatus.WORKING: ("WORKING", "working"),
    SessionStatus.COMPACTING: ("COMPACTING", "compacting"),
    SessionStatus.IDLE: ("IDLE", "idle"),
}

Layout = list[tuple[StatusGroup | None, list[SessionRecord]]]


def _session_fingerprint(s: SessionRecord) -> tuple:
    """Return a hashable fingerprint of the fields that affect rendering."""
    return (
        s.identity_key,
        s.session_id,
        s.status,
        s.project_name,
        s.session_name,
        s.branch,
        s.last_prompt,
        s.last_tool,
        s.last_tool_detail,
        s.notification_message,
        relative_time(s.last_activity),
    )


class SessionCard(Widget):
    """Renders a single session as a bordered card."""

    DEFAULT_CSS = """
    SessionCard {
        height: auto;
        padding: 0 1;
        background: transparent;
        border: round $surface-lighten-1;
    }
    SessionCard.working {
        border: round $success;
    }
    SessionCard.compacting {
        border: round $secondary;
    }
    SessionCard.waiting {
        border: round $warning;
    }
    SessionCard.permission {
        border: round $error;
    }
    SessionCard .card-details {
        height: 1;
        color: $text-muted;
    }
    SessionCard .card-context {
        height: 1;
    }
    """

    def __init__(self, session: SessionRecord) -> None:
        super().__init__()
        self.session_info = session
        self._apply_status_class()
        self._set_border_title()

    def _apply_status_class(self) -> None:
        for _, cls in STATUS_STYLE.values():
            self.remove_class(cls)
        _, cls = STATUS_STYLE[self.session_info.status]
        self.add_class(cls)

    def _set_border_title(self) -> None:
        s = self.session_info
        branch = f" [{s.branch}]" if s.branch and s.branch != "unknown" else ""
        self.border_title = f"{display_name(s)}{branch}"
        label, _ = STATUS_STYLE[s.status]
        self.border_subtitle = label

    def _build_details(self) -> str:
        s = self.session_info
        parts = [source_label(s), relative_time(s.last_activity)]
        if s.session_name and s.project_name:
            parts.insert(1, s.project_name)
        return "  |  ".join(parts)

    def _build_context(self) -> str:
        return context_line(self.session_info) or ""

    def compose(self) -> ComposeResult:
        yield Label(self._build_details(), classes="card-details")
        yield Label(self._build_context(), classes="card-context")

    def update_from(self, session: SessionRecord) -> None:
        """Update this card in-place with new session data."""
        self.session_info = session
        self._apply_status_class()
        self._set_border_title()
        try:
            self.query_one(".card-details", Label).update(self._build_details())
            self.query_one(".card-context", Label).update(self._build_context())
        except NoMatches:
            # Not composed yet; compose() will render the new data
            pass


class SectionHeader(Label):
    DEFAULT_CSS = """
    SectionHeader {
        padding: 0 1;
        color: $text-muted;
        text-style: bold;
    }
    """


class SessionList(ListView):
    """A ListView of SessionCards, optionally split into status sections."""

    BINDINGS = [
        ("j", "cursor_down", "Down"),
        ("k", "cursor_up", "Up"),
    ]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        # One entry per ListItem; None marks a section header
        self._rows: list[SessionRecord | None] = []
        self._last_fingerprint: tuple | None = None

    def refresh_sessions(self, layout: Layout) -> None:
        """Update the list, only rebuilding if data actually changed."""
        new_fp = tuple(
            (group, tuple(_session_fingerprint(s) for s in sessions))
            for group, sessions in layout
        )
        if new_fp == self._last_fingerprint:
            return
        old_structure = self._structure(self._last_fingerprint)
        self._last_fingerprint = new_fp

        rows: list[SessionRecord | None] = []
        for group, sessions in layout:
            if group is not None:
                rows.append(None)
            rows.extend(sessions)

        # Same cards in the same places: update in place to keep the cursor steady
        if old_structure == self._structure(new_fp):
            self._rows = rows
            for item, session in zip(self.children, rows):
                if session is not None:
                    item.query_one(SessionCard).update_from(session)
            return

        old_index = self.index or 0
        self._rows = rows
        self.clear()
        for group, sessions in layout:
            if group is not None:
                self.append(ListItem(SectionHeader(f"{group.value} ({len(sessions)})"), disabled=True))
            for session in sessions:
                self.append(ListItem(SessionCard(session)))

        if self._rows:
            self.index = self._nearest_card(min(old_index, len(self._rows) - 1))

    @staticmethod
    def _structure(fingerprint: tuple | None) -> tuple | None:
        if fingerprint is None:
            return None
        return tuple((group, tuple(fp[0] for fp in cards)) for group, cards in fingerprint)

    def _nearest_card(self, index: int) -> int:
        for i in range(index, len(self._rows)):
            if self._rows[i] is not None:
                return i
        return index

    def get_selected_session(self) -> SessionRecord | None:
        """Get the record for the currently highlighted card."""
        if self.index is not None and 0 <= self.index < len(self._rows):
            return self._rows[self.index]
        return None
