import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from batepapo.config import Settings
from batepapo.database import Database
from batepapo.main import create_app
from batepapo.messages import MessageStore
from batepapo.registry import ParticipantRegistry

T0 = 1_700_000_000_000


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def run(loop):
    return loop.run_until_complete


@pytest.fixture
def db(run, tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}")
    run(database.connect())
    yield database
    run(database.close())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(db, clock):
    return ParticipantRegistry(db, clock=clock)


@pytest.fixture
def store(db, clock):
    return MessageStore(db, clock=clock)


@pytest.fixture
def client(tmp_path):
    settings = Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        sweep_interval=3600,
        inactivity_timeout=10,
        cors_origins=["*"],
    )
    with TestClient(create_app(settings)) as client:
        yield client


async def drop_messages_table(db):
    """Break the store under the running app so every message query fails."""
    async with db.engine.begin() as conn:
        await conn.execute(text("DROP TABLE messages"))
