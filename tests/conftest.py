"""Shared fixtures: every test gets its own home and sessions directory."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from cctop.logs import HOOK_LOGGER
from cctop.models import SessionRecord, SessionStatus
from cctop.store import SessionStore

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point ~ and the sessions directory at a temp dir."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("CCTOP_SESSIONS_DIR", str(home / ".cctop" / "sessions"))
    yield home
    for name in ("cctop", HOOK_LOGGER):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "sessions")


@pytest.fixture
def make_record():
    def _make(session_id="sess-0001", status=SessionStatus.IDLE, age=0, **kwargs):
        kwargs.setdefault("project_path", "/home/dev/project")
        ts = NOW - timedelta(seconds=age)
        kwargs.setdefault("last_activity", ts)
        kwargs.setdefault("started_at", ts)
        return SessionRecord(session_id=session_id, status=status, **kwargs)
    return _make
