"""Persistent stores for rooms and scheduled temperature changes.

Both stores are thin, owner-scoped wrappers over SQLAlchemy async sessions.
Every call is bounded by ``store_timeout_s`` and database failures surface as
:class:`~thermochat.core.results.StoreError`.

Existence-sensitive writes use the database's conflict handling
(``INSERT ... ON CONFLICT``) or conditional statements, never read-then-write.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from thermochat.core.results import StoreError
from thermochat.models.database import Room, ScheduledChange, utcnow

logger = logging.getLogger(__name__)

_INSERTS: dict[str, Callable[..., Any]] = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class _SessionStore:
    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        timeout_s: float = 5.0,
    ) -> None:
        self._session_maker = session_maker
        self._timeout_s = timeout_s

    @asynccontextmanager
    async def _guarded(self, label: str) -> AsyncIterator[None]:
        try:
            async with asyncio.timeout(self._timeout_s):
                yield
        except TimeoutError as exc:
            raise StoreError(f"{label} timed out after {self._timeout_s}s") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"{label} failed: {exc}") from exc

    @asynccontextmanager
    async def _scope(self, session: AsyncSession | None) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        async with self._session_maker() as owned:
            yield owned

    @staticmethod
    def _insert(session: AsyncSession) -> Callable[..., Any]:
        dialect = session.get_bind().dialect.name
        try:
            return _INSERTS[dialect]
        except KeyError:
            raise StoreError(f"No conflict-aware insert for dialect {dialect!r}") from None


class RoomStore(_SessionStore):
    """Owner-scoped mapping of room name to current temperature."""

    async def list_rooms(self, owner_id: str) -> list[Room]:
        async with self._guarded("list rooms"), self._session_maker() as session:
            result = await session.execute(
                select(Room).where(Room.owner_id == owner_id).order_by(Room.name)
            )
            return list(result.scalars().all())

    async def list_names(self, owner_id: str) -> set[str]:
        async with self._guarded("list room names"), self._session_maker() as session:
            result = await session.execute(select(Room.name).where(Room.owner_id == owner_id))
            return set(result.scalars().all())

    async def get_temperature(self, owner_id: str, room: str) -> float | None:
        async with self._guarded("read temperature"), self._session_maker() as session:
            result = await session.execute(
                select(Room.temperature_c).where(Room.owner_id == owner_id, Room.name == room)
            )
            return result.scalar_one_or_none()

    async def insert_if_absent(self, owner_id: str, room: str, temperature_c: float) -> bool:
        """Create the room unless it already exists. Returns True if this call created it."""
        async with self._guarded("create room"), self._session_maker() as session:
            insert = self._insert(session)
            stmt = (
                insert(Room)
                .values(id=uuid.uuid4(), owner_id=owner_id, name=room, temperature_c=temperature_c)
                .on_conflict_do_nothing(index_elements=["owner_id", "name"])
            )
            result = await session.execute(stmt)
            created = bool(result.rowcount)
            await session.commit()
        return created

    async def upsert_temperature(self, owner_id: str, room: str, temperature_c: float) -> None:
        async with self._guarded("write temperature"), self._session_maker() as session:
            insert = self._insert(session)
            stmt = insert(Room).values(
                id=uuid.uuid4(), owner_id=owner_id, name=room, temperature_c=temperature_c
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["owner_id", "name"],
                set_={"temperature_c": stmt.excluded.temperature_c, "updated_at": utcnow()},
            )
            await session.execute(stmt)
            await session.commit()

    async def update_existing(
        self,
        owner_id: str,
        room: str,
        temperature_c: float,
        *,
        session: AsyncSession | None = None,
    ) -> bool:
        """Set the temperature of an existing room; never creates one.

        When ``session`` is given the caller owns the transaction.
        """
        async with self._guarded("update temperature"), self._scope(session) as s:
            result = await s.execute(
                update(Room)
                .where(Room.owner_id == owner_id, Room.name == room)
                .values(temperature_c=temperature_c, updated_at=utcnow())
            )
            updated = bool(result.rowcount)
            if session is None:
                await s.commit()
        return updated


class ScheduledChangeStore(_SessionStore):
    """Durable queue of pending temperature changes."""

    async def add(
        self,
        owner_id: str,
        room: str,
        temperature_c: float,
        due_at: datetime,
    ) -> ScheduledChange:
        change = ScheduledChange(
            id=uuid.uuid4(),
            owner_id=owner_id,
            room=room,
            temperature_c=temperature_c,
            due_at=due_at,
            created_at=utcnow(),
        )
        async with self._guarded("schedule change"), self._session_maker() as session:
            session.add(change)
            await session.commit()
        return change

    async def due(self, now: datetime) -> list[ScheduledChange]:
        async with self._guarded("read due changes"), self._session_maker() as session:
            result = await session.execute(
                select(ScheduledChange)
                .where(ScheduledChange.due_at <= now)
                .order_by(ScheduledChange.due_at, ScheduledChange.created_at)
            )
            return list(result.scalars().all())

    async def pending_for(self, owner_id: str) -> list[ScheduledChange]:
        async with self._guarded("list scheduled changes"), self._session_maker() as session:
            result = await session.execute(
                select(ScheduledChange)
                .where(ScheduledChange.owner_id == owner_id)
                .order_by(ScheduledChange.due_at, ScheduledChange.created_at)
            )
            return list(result.scalars().all())

    @asynccontextmanager
    async def claim(self, change_id: uuid.UUID) -> AsyncIterator[AsyncSession | None]:
        """Consume a scheduled change inside a transaction.

        The row is deleted first; the open session is yielded so the caller can
        apply the change in the same transaction. Yields ``None`` when another
        runner already consumed it. The delete commits on clean exit and is
        rolled back if the body raises, leaving the entry for the next tick.
        """
        async with self._session_maker() as session:
            async with self._guarded("claim scheduled change"):
                result = await session.execute(
                    delete(ScheduledChange).where(ScheduledChange.id == change_id)
                )
            if not result.rowcount:
                logger.debug("Scheduled change %s already consumed", change_id)
                await session.rollback()
                yield None
                return
            try:
                yield session
            except BaseException:
                await session.rollback()
                raise
            async with self._guarded("commit scheduled change"):
                await session.commit()


__all__ = ["RoomStore", "ScheduledChangeStore"]
