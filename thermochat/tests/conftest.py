from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from thermochat.config import Settings
from thermochat.core import (
    CommandDispatcher,
    RoomResolver,
    RoomStore,
    ScheduledChangeStore,
    SchedulerRunner,
    TemperatureMutator,
)
from thermochat.models.database import Base
from thermochat.services import ChatHistoryService

START = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


class FrozenClock:
    """Settable UTC clock shared by the mutator and the runner."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def settings() -> Settings:
    return Settings(scheduler_enabled=False, api_key="", cron_secret="")


@pytest.fixture
async def session_maker(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """A fresh SQLite file database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'thermochat.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def room_store(session_maker: async_sessionmaker[AsyncSession]) -> RoomStore:
    return RoomStore(session_maker)


@pytest.fixture
def schedule_store(session_maker: async_sessionmaker[AsyncSession]) -> ScheduledChangeStore:
    return ScheduledChangeStore(session_maker)


@pytest.fixture
def resolver(room_store: RoomStore) -> RoomResolver:
    return RoomResolver(room_store, default_temp_c=22.0)


@pytest.fixture
def mutator(
    resolver: RoomResolver,
    room_store: RoomStore,
    schedule_store: ScheduledChangeStore,
    clock: FrozenClock,
) -> TemperatureMutator:
    return TemperatureMutator(resolver, room_store, schedule_store, clock=clock)


@pytest.fixture
def dispatcher(
    resolver: RoomResolver,
    mutator: TemperatureMutator,
    room_store: RoomStore,
) -> CommandDispatcher:
    return CommandDispatcher(resolver, mutator, room_store)


@pytest.fixture
def runner(
    schedule_store: ScheduledChangeStore,
    mutator: TemperatureMutator,
    clock: FrozenClock,
) -> SchedulerRunner:
    return SchedulerRunner(schedule_store, mutator, clock=clock)


@pytest.fixture
def history(session_maker: async_sessionmaker[AsyncSession]) -> ChatHistoryService:
    return ChatHistoryService(session_maker)
