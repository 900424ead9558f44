"""
Test configuration and fixtures.

Provides a scriptable fake transport (no Firebase), an in-memory SQLite history store and an
HTTP client bound to the FastAPI app with its coordinator replaced by test doubles.
"""
import asyncio
import os
import tempfile

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.mktemp(suffix='.db')}")
os.environ.setdefault("FIREBASE_CREDENTIALS_JSON", "")
os.environ.setdefault("FIREBASE_CREDENTIALS_PATH", "")

from push_fanout.core.database import Base  # noqa: E402
from push_fanout.core.exceptions import TransportError  # noqa: E402
from push_fanout.core.history import SqlAlchemyHistoryRecorder  # noqa: E402
from push_fanout.models.push_history import PushHistory  # noqa: E402,F401


class FakeTransport:
    """
    In-memory NotificationTransport.
    `failures` maps token -> TransportError (or any exception) raised for that token only.
    Every call is recorded as (token, envelope, loop time at call start).
    """

    def __init__(self, failures=None, available=True, delay=0.0, name="fake"):
        self.failures = dict(failures or {})
        self.available = available
        self.delay = delay
        self.name = name
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.validated = []

    def is_available(self) -> bool:
        return self.available

    async def send(self, token, envelope):
        self.calls.append((token, envelope, asyncio.get_running_loop().time()))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
            error = self.failures.get(token)
            if error is not None:
                raise error
            return f"{self.name}-msg-{len(self.calls)}"
        finally:
            self.in_flight -= 1

    async def validate_token(self, token) -> bool:
        self.validated.append(token)
        return token not in self.failures

    @property
    def tokens_sent(self):
        return [token for token, _, _ in self.calls]


class RecordingRecorder:
    """DeliveryHistoryRecorder double that keeps the recorded results in memory."""

    def __init__(self, error=None, delay=0.0):
        self.records = []
        self.error = error
        self.delay = delay

    async def record(self, result, owner_id, title, body, target):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.records.append((result, owner_id, title, body, target))
        return len(self.records)

    async def list_recent(self, owner_id, limit=10):
        return []

    async def count_since(self, owner_id, since):
        return 0


def unregistered(message="Requested entity was not found."):
    return TransportError("UNREGISTERED", message)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest_asyncio.fixture
async def session_maker():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def history_recorder(session_maker):
    return SqlAlchemyHistoryRecorder(session_maker)
