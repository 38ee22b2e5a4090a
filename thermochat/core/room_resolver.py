"""Room existence checks and on-demand room creation."""

from __future__ import annotations

import logging

from thermochat.core.results import Outcome, StoreError
from thermochat.core.stores import RoomStore

logger = logging.getLogger(__name__)


def normalize_room_name(name: str) -> str:
    """Canonical room key: whitespace collapsed, lower-cased."""
    return " ".join(name.split()).lower()


class RoomResolver:
    """Answer "does this owner have that room?" and create rooms on demand."""

    def __init__(self, room_store: RoomStore, *, default_temp_c: float = 22.0) -> None:
        self._rooms = room_store
        self.default_temp_c = default_temp_c

    async def lookup_rooms(self, owner_id: str) -> set[str] | None:
        """Return the owner's room names, or ``None`` when the store is unreachable."""
        try:
            return await self._rooms.list_names(owner_id)
        except StoreError as exc:
            logger.warning("Room lookup failed for owner=%s: %s", owner_id, exc)
            return None

    async def rooms_for(self, owner_id: str) -> set[str]:
        """Advisory room set; a store outage degrades to "no rooms known"."""
        rooms = await self.lookup_rooms(owner_id)
        return rooms if rooms is not None else set()

    async def ensure_room(self, owner_id: str, room: str) -> Outcome:
        """Create ``room`` at the default temperature unless it already exists.

        Uses a single conflict-aware insert so concurrent callers cannot
        produce duplicate rooms.
        """
        name = normalize_room_name(room)
        if not name:
            return Outcome.failure("room name is empty")
        try:
            created = await self._rooms.insert_if_absent(owner_id, name, self.default_temp_c)
        except StoreError as exc:
            logger.error("Could not ensure room %r for owner=%s: %s", name, owner_id, exc)
            return Outcome.failure(str(exc))
        if created:
            logger.info(
                "Created room %r for owner=%s at %.1f°C", name, owner_id, self.default_temp_c
            )
        return Outcome.success(created=created)


__all__ = ["RoomResolver", "normalize_room_name"]
