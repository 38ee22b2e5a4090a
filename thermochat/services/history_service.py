"""Chat history service for ThermoChat.

Append-only log of (owner, message, response) turns. Recording is best
effort: a failure or timeout is logged and never fails the chat turn.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from thermochat.models.database import ChatTurn

logger = logging.getLogger(__name__)


class ChatHistoryService:
    """Persist and read back chat turns per owner.

    Usage::

        history = ChatHistoryService(get_session_maker(), timeout_s=5.0)
        await history.record("user-1", "set the kitchen to 25", "The temperature ...")
        turns = await history.recent("user-1", limit=20)
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        timeout_s: float = 5.0,
    ) -> None:
        self._session_maker = session_maker
        self._timeout_s = timeout_s

    async def record(self, owner_id: str, message: str, response: str) -> bool:
        """Append a turn. Returns False (after logging) if it could not be stored."""
        try:
            async with asyncio.timeout(self._timeout_s), self._session_maker() as session:
                session.add(ChatTurn(owner_id=owner_id, message=message, response=response))
                await session.commit()
        except TimeoutError:
            logger.warning(
                "Recording chat turn for owner=%s timed out after %ss", owner_id, self._timeout_s
            )
            return False
        except SQLAlchemyError as exc:
            logger.warning("Failed to record chat turn for owner=%s: %s", owner_id, exc)
            return False
        return True

    async def recent(self, owner_id: str, *, limit: int = 50) -> list[ChatTurn]:
        """Return the owner's latest turns, oldest first.

        Raises ``TimeoutError`` when the store does not answer in time.
        """
        async with asyncio.timeout(self._timeout_s), self._session_maker() as session:
            result = await session.execute(
                select(ChatTurn)
                .where(ChatTurn.owner_id == owner_id)
                .order_by(desc(ChatTurn.created_at))
                .limit(limit)
            )
            turns = list(result.scalars().all())
        turns.reverse()
        return turns


__all__ = ["ChatHistoryService"]
