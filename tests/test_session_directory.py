from datetime import date

import pytest

from models.chat_record import ChatSession
from services.chat.session_directory import SessionDirectory, display_title, relative_date_label
from utils.errors import PersistenceError

USER = "auth0|alice"
DAY = 24 * 60 * 60
NOW = 1_700_000_000.0


async def test_scenario_d_two_creates_are_distinct_and_newest_first(gateway):
    directory = SessionDirectory(gateway)

    first = await directory.create_session(USER)
    second = await directory.create_session(USER)

    assert first.session_id != second.session_id
    assert first.title == second.title == "New Chat"
    assert [s.session_id for s in directory.sessions] == [second.session_id, first.session_id]
    assert [s.session_id for s in await directory.list_sessions(USER)] == [second.session_id, first.session_id]


async def test_on_created_runs_after_listing_contains_the_session(gateway):
    directory = SessionDirectory(gateway)
    seen = []

    async def on_created(session_id):
        seen.append((session_id, [s.session_id for s in directory.sessions]))

    session = await directory.create_session(USER, on_created=on_created)

    assert seen == [(session.session_id, [session.session_id])]


async def test_failed_create_returns_none_and_keeps_listing(flaky_gateway):
    directory = SessionDirectory(flaky_gateway)
    existing = await directory.create_session(USER)
    flaky_gateway.fail_session_inserts = True
    called = []

    async def on_created(session_id):
        called.append(session_id)

    assert await directory.create_session(USER, on_created=on_created) is None
    assert called == []
    assert [s.session_id for s in directory.sessions] == [existing.session_id]


async def test_failed_listing_returns_previous_listing(gateway):
    directory = SessionDirectory(gateway)
    session = await directory.create_session(USER)

    async def broken(user_id):
        raise PersistenceError("list_sessions failed: disk I/O error")

    gateway.list_sessions = broken

    assert [s.session_id for s in await directory.list_sessions(USER)] == [session.session_id]


async def test_listing_is_scoped_to_user(gateway):
    directory = SessionDirectory(gateway)
    await directory.create_session("auth0|bob")

    assert await directory.list_sessions(USER) == []


@pytest.mark.parametrize(
    "age, label",
    [
        (0, "Today"),
        (DAY / 2, "Today"),
        (DAY, "Today"),
        (DAY * 1.5, "Yesterday"),
        (DAY * 3, "3 days ago"),
        (DAY * 7, "7 days ago"),
    ],
)
def test_relative_date_label(age, label):
    assert relative_date_label(NOW - age, now=NOW) == label


def test_relative_date_label_falls_back_to_calendar_date():
    created_at = NOW - DAY * 30

    assert relative_date_label(created_at, now=NOW) == date.fromtimestamp(created_at).isoformat()


def test_display_title_falls_back_for_blank_titles():
    assert display_title(ChatSession(session_id="s", user_id=USER, title="Trip ideas")) == "Trip ideas"
    assert display_title(ChatSession(session_id="s", user_id=USER, title="   ")) == "New Chat"
