"""Shared test fixtures and configuration for backend tests."""
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from app.auth.schemas import Principal, UserRole
from app.config import AppConfig, DatabaseSettings
from app.conversations.service import ConversationStore
from app.db import Database
from app.main import create_app
from app.messages.service import MessageLog
from app.notifications.service import NotificationStore

TEST_SECRET = "test-secret"


class FakeWebSocket:
    """Records frames instead of sending them.

    ``on_send`` runs after each frame is recorded, which lets a test mutate
    shared state at the exact point a real send would suspend.
    """

    def __init__(self, fail: bool = False) -> None:
        self.sent: List[dict] = []
        self.fail = fail
        self.on_send = None

    async def send_json(self, frame: dict) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(frame)
        if self.on_send is not None:
            self.on_send(frame)

    def events(self) -> List[str]:
        return [f["event"] for f in self.sent]


def principal(user_id: str, name: Optional[str] = None, role: UserRole = UserRole.REVISOR) -> Principal:
    return Principal(id=user_id, name=name or user_id.capitalize(), role=role, email=f"{user_id}@example.com")


@pytest.fixture
def config() -> AppConfig:
    cfg = AppConfig(database=DatabaseSettings(path=":memory:"))
    cfg.secrets.jwt.secret_key = TEST_SECRET
    return cfg


@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def api_client(app):
    """TestClient with the lifespan running (services live on app.state)."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def token_for(api_client):
    """Issue a bearer token for a user id, signed with the app's secret."""
    tokens = api_client.app.state.tokens

    def _issue(user_id: str, name: Optional[str] = None, role: UserRole = UserRole.REVISOR) -> str:
        return tokens.issue(principal(user_id, name, role))

    return _issue


@pytest.fixture
def db():
    database = Database(":memory:")
    yield database
    database.close()


@pytest.fixture
def conversations(db) -> ConversationStore:
    return ConversationStore(db)


@pytest.fixture
def messages(db) -> MessageLog:
    return MessageLog(db)


@pytest.fixture
def notifications(db) -> NotificationStore:
    return NotificationStore(db)


@pytest.fixture
def make_principal():
    return principal


@pytest.fixture
def fake_socket():
    """Factory for FakeWebSocket instances."""
    return FakeWebSocket
