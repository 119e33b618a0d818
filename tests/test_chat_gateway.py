import asyncio

import pytest

from dal.chat_gateway import PersistenceGateway
from models.chat_record import ChatMessage, ChatSession, MessageRole
from utils.database_init import AsyncDatabaseInitializer
from utils.errors import PersistenceError, SessionAccessError

USER = "auth0|alice"
OTHER = "auth0|mallory"


async def test_message_round_trip_keeps_role_content_and_image(gateway, new_session):
    session = await new_session(USER)
    image = "data:image/png;base64,iVBORw0KGgo="
    sent = [
        ChatMessage(session_id=session.session_id, user_id=USER, role=MessageRole.USER, content="draw a cat"),
        ChatMessage(session_id=session.session_id, user_id=USER, role=MessageRole.ASSISTANT, content="", image=image),
    ]
    for message in sent:
        message.id = await gateway.insert_message(message)

    stored = await gateway.list_messages(USER, session.session_id)

    assert [(m.role, m.content, m.image) for m in stored] == [
        (MessageRole.USER, "draw a cat", None),
        (MessageRole.ASSISTANT, "", image),
    ]
    assert [m.id for m in stored] == [m.id for m in sent]
    assert stored == sent


async def test_messages_ordered_by_created_at_then_storage_order(gateway, new_session):
    session = await new_session(USER)
    late = ChatMessage(session_id=session.session_id, user_id=USER, role=MessageRole.USER, content="late", created_at=200.0)
    tie_a = ChatMessage(session_id=session.session_id, user_id=USER, role=MessageRole.USER, content="a", created_at=100.0)
    tie_b = ChatMessage(session_id=session.session_id, user_id=USER, role=MessageRole.ASSISTANT, content="b", created_at=100.0)
    for message in (late, tie_a, tie_b):
        await gateway.insert_message(message)

    stored = await gateway.list_messages(USER, session.session_id)

    assert [m.content for m in stored] == ["a", "b", "late"]


async def test_sessions_listed_newest_first_with_ties_by_insertion(gateway):
    await gateway.insert_session(ChatSession(session_id="old", user_id=USER, created_at=10.0))
    await gateway.insert_session(ChatSession(session_id="tie-1", user_id=USER, created_at=20.0))
    await gateway.insert_session(ChatSession(session_id="tie-2", user_id=USER, created_at=20.0))
    await gateway.insert_session(ChatSession(session_id="theirs", user_id=OTHER, created_at=30.0))

    sessions = await gateway.list_sessions(USER)

    assert [s.session_id for s in sessions] == ["tie-2", "tie-1", "old"]


async def test_title_update_is_conditional_on_sentinel(gateway, new_session):
    session = await new_session(USER)

    assert await gateway.update_session_title(session.session_id, USER, "New Chat", "Hello") is True
    assert await gateway.update_session_title(session.session_id, USER, "New Chat", "Second") is False

    stored = await gateway.get_session(USER, session.session_id)
    assert stored.title == "Hello"


async def test_title_update_truncates_to_fifty_characters(gateway, new_session):
    session = await new_session(USER)

    await gateway.update_session_title(session.session_id, USER, "New Chat", "x" * 80)

    stored = await gateway.get_session(USER, session.session_id)
    assert stored.title == "x" * 50


async def test_racing_title_updates_only_one_wins(gateway, new_session):
    session = await new_session(USER)

    results = await asyncio.gather(
        gateway.update_session_title(session.session_id, USER, "New Chat", "first prompt"),
        gateway.update_session_title(session.session_id, USER, "New Chat", "second prompt"),
    )

    assert sorted(results) == [False, True]
    stored = await gateway.get_session(USER, session.session_id)
    assert stored.title in {"first prompt", "second prompt"}


async def test_cross_user_access_is_rejected(gateway, new_session):
    session = await new_session(USER)
    intruder = ChatMessage(session_id=session.session_id, user_id=OTHER, role=MessageRole.USER, content="hi")

    with pytest.raises(SessionAccessError):
        await gateway.insert_message(intruder)
    with pytest.raises(SessionAccessError):
        await gateway.list_messages(OTHER, session.session_id)
    assert await gateway.get_session(OTHER, session.session_id) is None
    assert await gateway.update_session_title(session.session_id, OTHER, "New Chat", "pwned") is False
    assert await gateway.list_messages(USER, session.session_id) == []


async def test_message_without_parent_session_is_rejected(gateway):
    orphan = ChatMessage(session_id="missing", user_id=USER, role=MessageRole.USER, content="hi")

    with pytest.raises(SessionAccessError):
        await gateway.insert_message(orphan)


async def test_synthetic_messages_are_refused(gateway, new_session):
    session = await new_session(USER)
    synthetic = ChatMessage(
        session_id=session.session_id, user_id=USER, role=MessageRole.ASSISTANT, content="oops", synthetic=True
    )

    with pytest.raises(ValueError):
        await gateway.insert_message(synthetic)


async def test_duplicate_session_id_is_a_persistence_error(gateway):
    await gateway.insert_session(ChatSession(session_id="dup", user_id=USER))

    with pytest.raises(PersistenceError):
        await gateway.insert_session(ChatSession(session_id="dup", user_id=USER))


async def test_history_survives_a_new_initializer(tmp_path, new_session, gateway):
    session = await new_session(USER)
    await gateway.insert_message(
        ChatMessage(session_id=session.session_id, user_id=USER, role=MessageRole.USER, content="remember me")
    )

    reopened = AsyncDatabaseInitializer(tmp_path / "db")
    stored = await PersistenceGateway(reopened).list_messages(USER, session.session_id)
    assert [m.content for m in stored] == ["remember me"]


def test_database_dir_pointing_at_a_file_is_rejected(tmp_path):
    target = tmp_path / "not_a_dir"
    target.write_text("x")

    with pytest.raises(RuntimeError):
        AsyncDatabaseInitializer(target)


def test_missing_database_dir_is_rejected(monkeypatch):
    monkeypatch.delenv("DATABASE_DIR", raising=False)

    with pytest.raises(RuntimeError):
        AsyncDatabaseInitializer()
