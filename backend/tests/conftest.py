"""
Shared fixtures. Tests run against a throwaway SQLite file; the schema is
rebuilt for every test.
"""
import asyncio
import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="examguard-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'examguard.db')}"
os.environ["WS_HEARTBEAT_INTERVAL"] = "3600"

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from examguard.core.database import AsyncSessionLocal, async_engine, create_db_and_tables, drop_db_and_tables
from examguard.services.broadcast_hub import BroadcastHub
from examguard.services.session_store import SessionStore
from examguard.services.session_lifecycle import SessionLifecycleManager
from examguard.services.violation_service import ViolationService


async def _reset_database():
    await drop_db_and_tables()
    await create_db_and_tables()
    await async_engine.dispose()


class FakeWebSocket:
    """Stands in for a Starlette WebSocket inside the hub."""

    def __init__(self, fail_sends: bool = False):
        self.sent = []
        self.accepted = False
        self.closed = False
        self.close_code = None
        self.fail_sends = fail_sends
        self.client_state = WebSocketState.CONNECTING
        self.application_state = WebSocketState.CONNECTING

    async def accept(self):
        self.accepted = True
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    def drop(self):
        """The peer went away without a close frame reaching the hub."""
        self.client_state = WebSocketState.DISCONNECTED

    async def send_json(self, data):
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent.append(data)

    async def close(self, code: int = 1000):
        self.closed = True
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED

    def sent_types(self):
        return [frame["type"] for frame in self.sent]


@pytest.fixture
async def db():
    await _reset_database()
    async with AsyncSessionLocal() as session:
        yield session
    await async_engine.dispose()


@pytest.fixture
def store(db):
    return SessionStore(db)


@pytest.fixture
def lifecycle(store):
    return SessionLifecycleManager(store)


@pytest.fixture
def hub():
    return BroadcastHub(heartbeat_interval=3600)


@pytest.fixture
def violation_service(store, lifecycle, hub):
    return ViolationService(store, lifecycle, hub)


@pytest.fixture
async def student(store):
    return await store.create_student(name="Ada Lovelace", email="ada@example.com")


@pytest.fixture
async def exam(store):
    return await store.create_exam_session(title="Algebra midterm", duration=60)


@pytest.fixture
def fake_socket_factory():
    return FakeWebSocket


@pytest.fixture
def client():
    asyncio.run(_reset_database())
    from examguard.main import app

    with TestClient(app) as test_client:
        yield test_client
