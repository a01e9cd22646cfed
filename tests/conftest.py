"""Pytest configuration and shared fixtures."""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing settings
os.environ.update({
    "ENVIRONMENT": "development",
    "MAX_CONCURRENT_SESSIONS": "5",
    "SUMMARY_ENGINE": "mock",  # Canned summaries, no completion service
    "STREAMING_ENGINE": "mock",  # No streaming account needed
    "SESSION_STOP_TIMEOUT_S": "1.0",
})

OWNER = "user-1"
STRANGER = "user-2"
BASE_PROMPT = "You are a friendly music guide."
T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_message(role, content, minutes=0.0):
    """Message at T0 + minutes."""
    from avatar_console.storage.models import Message

    return Message(role=role, content=content, timestamp=T0 + timedelta(minutes=minutes))


def run_sync(coro):
    """Run a coroutine on a private loop, leaving the current loop untouched."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def seed_store(store, messages=()):
    """Store with one knowledge base, one conversation owned by OWNER."""
    from avatar_console.storage.models import Conversation, KnowledgeBase

    await store.save_knowledge_base(
        KnowledgeBase(id="kb-1", name="Music", base_prompt=BASE_PROMPT, welcome_message="Hi!")
    )
    await store.save_conversation(
        Conversation(
            id="conv-1",
            owner_id=OWNER,
            knowledge_base_id="kb-1",
            avatar_id="avatar-1",
            title="Music chat",
            created_at=T0,
            last_message_at=T0,
        )
    )
    for message in messages:
        await store.add_message("conv-1", message)
    return store


@pytest.fixture
def test_settings():
    """Provide test settings instance."""
    from avatar_console.config.settings import Settings

    return Settings(
        max_concurrent_sessions=5,
        summary_engine="mock",
        streaming_engine="mock",
    )


@pytest.fixture
def store():
    """Seeded in-memory store."""
    from avatar_console.storage.memory import InMemoryConversationStore

    return run_sync(seed_store(InMemoryConversationStore()))


@pytest.fixture
def streaming_client():
    from avatar_console.streaming.mock_client import MockStreamingClient

    return MockStreamingClient()


@pytest.fixture
def client(store, streaming_client) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to the seeded store and mock streaming client."""
    from avatar_console.api import dependencies
    from avatar_console.main import create_app
    from avatar_console.orchestrator.session import SessionManager

    dependencies.reset_services()
    dependencies._store = store
    dependencies._streaming_client = streaming_client
    dependencies._session_manager = SessionManager(max_sessions=5, stop_timeout_s=1.0)

    with TestClient(create_app()) as c:
        yield c

    dependencies.reset_services()


@pytest.fixture
def owner_headers() -> dict[str, str]:
    return {"X-User-Id": OWNER}


@pytest.fixture
def stranger_headers() -> dict[str, str]:
    return {"X-User-Id": STRANGER}
