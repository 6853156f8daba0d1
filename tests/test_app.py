import asyncio

from cctop.app import CctopApp
from cctop.config import Config
from cctop.models import SessionStatus, utc_now
from cctop.widgets.session_card import SectionHeader, SessionCard, SessionList


class DeadByName:
    def is_alive(self, record):
        return record.session_id != "dead"


def seed(store, make_record):
    now = utc_now()
    store.put("1", make_record(session_id="perm", status=SessionStatus.WAITING_PERMISSION, last_activity=now))
    store.put("2", make_record(session_id="work", status=SessionStatus.WORKING, last_activity=now))
    store.put("3", make_record(session_id="idle", status=SessionStatus.IDLE, last_activity=now))
    store.put("4", make_record(session_id="dead", status=SessionStatus.IDLE, last_activity=now))


def test_renders_live_sessions_in_sections(store, make_record):
    seed(store, make_record)

    async def run():
        app = CctopApp(store=store, config=Config(), oracle=DeadByName())
        async with app.run_test() as pilot:
            await pilot.pause()
            cards = app.query(SessionCard)
            assert [c.session_info.session_id for c in cards] == ["perm", "work", "idle"]
            assert len(app.query(SectionHeader)) == 3
            session_list = app.query_one("#session-list", SessionList)
            assert session_list.get_selected_session().session_id == "perm"
            assert not app.query_one("#empty-state").display

    asyncio.run(run())


def test_empty_state(store):
    async def run():
        app = CctopApp(store=store, config=Config(), oracle=DeadByName())
        async with app.run_test() as pilot:
            await pilot.pause()
            assert len(app.query(SessionCard)) == 0
            assert app.query_one("#empty-state").display

    asyncio.run(run())


def test_cleanup_action_prunes_dead(store, make_record):
    seed(store, make_record)

    async def run():
        app = CctopApp(store=store, config=Config(), oracle=DeadByName())
        async with app.run_test() as pilot:
            await pilot.press("c")
            await pilot.pause()

    asyncio.run(run())
    assert [r.session_id for _, r in store.list()] == ["perm", "work", "idle"]


def test_refresh_does_not_write(store, make_record):
    seed(store, make_record)
    before = {p.name: p.read_text() for p in store.root.iterdir()}

    async def run():
        app = CctopApp(store=store, config=Config(), oracle=DeadByName())
        async with app.run_test() as pilot:
            await pilot.press("r")
            await pilot.pause()

    asyncio.run(run())
    assert {p.name: p.read_text() for p in store.root.iterdir()} == before
