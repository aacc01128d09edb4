"""Shared fixtures: an in-memory database and the repositories on top of it."""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from prototyper.config import Settings
from prototyper.database.session import create_session_factory, init_db
from prototyper.repositories.event_repository import PromptEventLog
from prototyper.repositories.prompt_repository import PromptRepository
from prototyper.repositories.user_repository import UserRepository


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        environment="test",
        openai_api_key="test-key",
        jwt_secret_key="test-secret",
        worker_poll_interval_seconds=0.01,
        worker_batch_size=2,
    )


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return PromptRepository(session_factory)


@pytest.fixture
def events(session_factory):
    return PromptEventLog(session_factory)


@pytest.fixture
def users(session_factory):
    return UserRepository(session_factory)


@pytest.fixture
async def owner(users):
    return await users.create("owner@example.com")


@pytest.fixture
async def other_owner(users):
    return await users.create("someone-else@example.com")
