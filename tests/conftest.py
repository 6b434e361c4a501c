"""Shared fixtures: an in-memory motor database, repositories, service, HTTP client."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from exchange_chat.config import get_settings
from exchange_chat.main import create_app
from exchange_chat.repositories import message_repository
from exchange_chat.repositories.conversation_repository import ConversationRepository
from exchange_chat.repositories.message_repository import MessageRepository
from exchange_chat.services.chat_service import ChatService
from exchange_chat.utils.security import create_access_token


TEST_JWT_SECRET = "exchange-chat-test-suite-signing-secret"


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    get_settings.cache_clear()
    yield TEST_JWT_SECRET
    get_settings.cache_clear()


@pytest.fixture
def db():
    return AsyncMongoMockClient()[f"exchange_chat_{uuid.uuid4().hex}"]


@pytest.fixture
def message_repo(db) -> MessageRepository:
    return MessageRepository(db)


@pytest.fixture
def conversation_repo(db) -> ConversationRepository:
    return ConversationRepository(db)


@pytest.fixture
def service(message_repo, conversation_repo) -> ChatService:
    return ChatService(message_repo, conversation_repo)


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch):
    """Controllable store clock. ``clock.set(dt)`` pins the next timestamps."""

    class _Clock:
        def __init__(self) -> None:
            self.now = datetime(2024, 5, 1, 12, 0, 0)

        def set(self, value: datetime) -> None:
            self.now = value

        def advance(self, **kwargs) -> None:
            self.now = self.now + timedelta(**kwargs)

        def __call__(self) -> datetime:
            return self.now

    c = _Clock()
    monkeypatch.setattr(message_repository, "utc_now_ms", c)
    return c


@pytest.fixture
def client(db):
    app = create_app(database=db)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers() -> Callable[..., Dict[str, str]]:
    def _headers(user_id: str, name: Optional[str] = None) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, name=name)}"}

    return _headers
