"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

APPROVED = ("ann@example.com", "bob@example.com", "cat@example.com")
CONTROL_TOKEN = "control-test-token"


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from chatroom.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def tracker(storage):
    """Create Tracker with storage."""
    from chatroom.tracker import Tracker

    return Tracker(storage)


@pytest.fixture
def registry():
    from chatroom.presence import PresenceRegistry

    return PresenceRegistry()


@pytest.fixture
def relay(registry):
    """Relay with its own registry; connections are attached by tests."""
    from chatroom.relay import Relay

    return Relay(registry)


@pytest.fixture
def pipeline(storage, tracker):
    from chatroom.admission import MessagePipeline

    return MessagePipeline(storage, tracker)


@pytest_asyncio.fixture
async def identity(storage, tracker):
    """IdentityGate with the approved test emails."""
    from chatroom.identity import IdentityGate

    gate = IdentityGate(storage=storage, tracker=tracker, secret="test-secret")
    for email in APPROVED:
        await gate.approve_email(email)
    return gate


@pytest.fixture
def settings():
    from chatroom.config import Settings

    return Settings(
        session_secret="test-secret",
        approved_emails=APPROVED,
        control_token=CONTROL_TOKEN,
        retention_sweep_seconds=0,
    )


@pytest.fixture
def client(settings):
    """FastAPI TestClient around a fresh in-memory Application."""
    from fastapi.testclient import TestClient

    from chatroom.api import create_fastapi_app
    from chatroom.app import Application

    application = Application(settings=settings, db_path=":memory:")
    with TestClient(create_fastapi_app(application)) as test_client:
        yield test_client


@pytest.fixture
def make_message():
    """Factory for ChatMessages with sensible defaults."""
    from chatroom.models import ChatMessage

    def _make(
        id: str,
        created_at: datetime | None = None,
        user_id: str = "u1",
        content: str = "hello",
    ) -> ChatMessage:
        return ChatMessage(
            id=id,
            user_id=user_id,
            user_name="Ann",
            content=content,
            created_at=created_at or datetime.now(timezone.utc),
        )

    return _make


def auth_headers(client, email: str = "ann@example.com", name: str = "Ann") -> dict:
    """Sign up (if needed) and sign in; return bearer headers."""
    client.post("/api/auth/signup", json={"email": email, "password": "secret123", "name": name})
    response = client.post("/api/auth/signin", json={"email": email, "password": "secret123"})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def minutes_ago(minutes: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=minutes)
