import asyncio
import base64
import io
from typing import Optional

import pytest
from PIL import Image

from dal.chat_gateway import PersistenceGateway
from models.chat_record import ChatSession
from models.generation import (
    ImageGenerationResult,
    TextGenerationRequest,
    TextGenerationResult,
)
from services.chat.selection_cache import SelectionCache
from utils.database_init import AsyncDatabaseInitializer
from utils.errors import PersistenceError


def make_png_base64(size=(4, 4), color=(200, 30, 30)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class FakeDispatcher:
    """Stands in for GenerationDispatcher; records requests and can be paused."""

    def __init__(self, text: str = "Hi! How can I help?", image: Optional[str] = None) -> None:
        self.text = text
        self.image = image or f"data:image/png;base64,{make_png_base64()}"
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.calls = []

    async def generate(self, request):
        self.calls.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if isinstance(request, TextGenerationRequest):
            return TextGenerationResult(text=self.text)
        return ImageGenerationResult(image=self.image)


class FlakyGateway:
    """Wraps a real gateway; the next `fail_inserts` message writes raise PersistenceError."""

    def __init__(self, inner: PersistenceGateway) -> None:
        self.inner = inner
        self.fail_inserts = 0
        self.fail_session_inserts = False

    async def list_sessions(self, user_id):
        return await self.inner.list_sessions(user_id)

    async def get_session(self, user_id, session_id):
        return await self.inner.get_session(user_id, session_id)

    async def insert_session(self, session):
        if self.fail_session_inserts:
            raise PersistenceError("insert_session failed: disk I/O error")
        return await self.inner.insert_session(session)

    async def update_session_title(self, session_id, user_id, expected_old_title, new_title):
        return await self.inner.update_session_title(session_id, user_id, expected_old_title, new_title)

    async def list_messages(self, user_id, session_id):
        return await self.inner.list_messages(user_id, session_id)

    async def insert_message(self, message):
        if self.fail_inserts > 0:
            self.fail_inserts -= 1
            raise PersistenceError("insert_message failed: database is locked")
        return await self.inner.insert_message(message)


@pytest.fixture
def db_initializer(tmp_path):
    return AsyncDatabaseInitializer(tmp_path / "db")


@pytest.fixture
def gateway(db_initializer):
    return PersistenceGateway(db_initializer)


@pytest.fixture
def flaky_gateway(gateway):
    return FlakyGateway(gateway)


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def selection_cache(tmp_path):
    return SelectionCache(tmp_path / "selection")


@pytest.fixture
def png_b64():
    return make_png_base64()


@pytest.fixture
def new_session(gateway):
    async def _create(user_id: str = "auth0|alice", title: str = "New Chat") -> ChatSession:
        session = ChatSession(session_id=f"sess-{user_id}-{len(_create.created)}", user_id=user_id, title=title)
        _create.created.append(session)
        return await gateway.insert_session(session)

    _create.created = []
    return _create


@pytest.fixture
def wait_until():
    async def _wait(predicate, timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.005)

    return _wait
