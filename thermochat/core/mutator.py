"""Immediate and deferred room temperature changes.

A mutation request runs Resolve -> Branch on delay -> Apply | Schedule:

1. Resolve: make sure the room exists (created silently at the default
   temperature). Failure aborts with ``room_failed``.
2. Branch: no delay, or a delay that truncates to zero seconds, applies now.
   A longer delay schedules. Delays above ``max_delay_minutes`` are rejected
   before the room is touched.
3. Apply: upsert the temperature. A store failure yields ``update_failed``;
   nothing is retried here.
4. Schedule: persist a ScheduledChange due at now + delay. The room's visible
   temperature does not change until the scheduler runner applies it.

Delays are fractional minutes converted to whole seconds; fractional seconds
are truncated.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from thermochat.core.results import MutationResult, StoreError, format_temperature
from thermochat.core.room_resolver import RoomResolver, normalize_room_name
from thermochat.core.stores import RoomStore, ScheduledChangeStore
from thermochat.models.database import ScheduledChange
from thermochat.models.enums import MutationStatus

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


INVALID_TEMPERATURE = "temperature out of range"
INVALID_DELAY = "delay is not a number"
DELAY_TOO_LONG = "delay too long"


def delay_to_timedelta(delay_minutes: float) -> timedelta:
    """Convert fractional minutes to a whole-second timedelta (truncating)."""
    return timedelta(seconds=int(delay_minutes * 60))


def describe_delay(delay_minutes: float) -> str:
    seconds = int(delay_to_timedelta(delay_minutes).total_seconds())
    if seconds < 60:
        return f"{seconds} second" if seconds == 1 else f"{seconds} seconds"
    minutes = format_temperature(delay_minutes)
    return f"{minutes} minute" if minutes == "1" else f"{minutes} minutes"


class TemperatureMutator:
    def __init__(
        self,
        resolver: RoomResolver,
        room_store: RoomStore,
        schedule_store: ScheduledChangeStore,
        *,
        min_temp_c: float = -50.0,
        max_temp_c: float = 60.0,
        max_delay_minutes: float = 525_600.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._resolver = resolver
        self._rooms = room_store
        self._schedule = schedule_store
        self.min_temp_c = min_temp_c
        self.max_temp_c = max_temp_c
        self.max_delay_minutes = max_delay_minutes
        self._clock = clock

    async def set_temperature(
        self,
        owner_id: str,
        room: str,
        temperature_c: float,
        delay_minutes: float | None = None,
    ) -> MutationResult:
        name = normalize_room_name(room)
        temperature = float(temperature_c)

        if not math.isfinite(temperature) or not (
            self.min_temp_c <= temperature <= self.max_temp_c
        ):
            return MutationResult(
                status=MutationStatus.invalid,
                room=name,
                temperature_c=temperature,
                reason=INVALID_TEMPERATURE,
            )
        if delay_minutes is not None and not math.isfinite(delay_minutes):
            return MutationResult(
                status=MutationStatus.invalid,
                room=name,
                temperature_c=temperature,
                delay_minutes=delay_minutes,
                reason=INVALID_DELAY,
            )
        try:
            due_at = self._due_at(delay_minutes)
        except OverflowError:
            return MutationResult(
                status=MutationStatus.invalid,
                room=name,
                temperature_c=temperature,
                delay_minutes=delay_minutes,
                reason=DELAY_TOO_LONG,
            )

        outcome = await self._resolver.ensure_room(owner_id, name)
        if not outcome.ok:
            return MutationResult(
                status=MutationStatus.room_failed,
                room=name,
                temperature_c=temperature,
                reason=outcome.reason,
            )

        if due_at is None or delay_minutes is None:
            return await self._apply_now(owner_id, name, temperature)
        return await self._schedule_change(owner_id, name, temperature, delay_minutes, due_at)

    def _due_at(self, delay_minutes: float | None) -> datetime | None:
        """Due time for a delayed change, or None to apply now.

        Sub-second delays truncate to zero and apply now. Raises
        ``OverflowError`` for delays past ``max_delay_minutes`` or the
        calendar.
        """
        if delay_minutes is None or delay_minutes <= 0:
            return None
        if delay_minutes > self.max_delay_minutes:
            raise OverflowError(f"delay of {delay_minutes} minutes exceeds the limit")
        delay = delay_to_timedelta(delay_minutes)
        if delay <= timedelta(0):
            return None
        return self._clock() + delay

    async def _apply_now(self, owner_id: str, room: str, temperature: float) -> MutationResult:
        try:
            await self._rooms.upsert_temperature(owner_id, room, temperature)
        except StoreError as exc:
            logger.error("Failed to update %r for owner=%s: %s", room, owner_id, exc)
            return MutationResult(
                status=MutationStatus.update_failed,
                room=room,
                temperature_c=temperature,
                reason=str(exc),
            )
        logger.info("Set %r for owner=%s to %.1f°C", room, owner_id, temperature)
        return MutationResult(status=MutationStatus.applied, room=room, temperature_c=temperature)

    async def _schedule_change(
        self,
        owner_id: str,
        room: str,
        temperature: float,
        delay_minutes: float,
        due_at: datetime,
    ) -> MutationResult:
        try:
            change = await self._schedule.add(owner_id, room, temperature, due_at)
        except StoreError as exc:
            logger.error("Failed to schedule %r for owner=%s: %s", room, owner_id, exc)
            return MutationResult(
                status=MutationStatus.schedule_failed,
                room=room,
                temperature_c=temperature,
                delay_minutes=delay_minutes,
                reason=str(exc),
            )
        logger.info(
            "Scheduled change %s: %r for owner=%s -> %.1f°C at %s",
            change.id,
            room,
            owner_id,
            temperature,
            due_at.isoformat(),
        )
        return MutationResult(
            status=MutationStatus.scheduled,
            room=room,
            temperature_c=temperature,
            delay_minutes=delay_minutes,
            due_at=due_at,
        )

    async def apply_scheduled(self, change: ScheduledChange, *, session: AsyncSession) -> bool:
        """Immediate-apply path for a due change; never creates the room.

        Returns False when the room no longer exists. Raises ``StoreError``.
        """
        return await self._rooms.update_existing(
            change.owner_id, change.room, change.temperature_c, session=session
        )

    def describe(self, result: MutationResult) -> str:
        room = result.room
        temp = format_temperature(result.temperature_c)
        match result.status:
            case MutationStatus.applied:
                return f"The temperature in {room} has been updated to {temp}°C."
            case MutationStatus.scheduled:
                delay = describe_delay(result.delay_minutes or 0)
                due = result.due_at.strftime("%H:%M UTC") if result.due_at else "later"
                return (
                    f"The temperature in {room} will be set to {temp}°C in {delay} "
                    f"(at {due})."
                )
            case MutationStatus.invalid if result.reason == DELAY_TOO_LONG:
                limit = describe_delay(self.max_delay_minutes)
                return (
                    f"That delay is too long. I can schedule changes for {room} "
                    f"up to {limit} ahead."
                )
            case MutationStatus.invalid if result.reason == INVALID_DELAY:
                return f"I couldn't understand the delay for {room}. Please give it in minutes."
            case MutationStatus.invalid:
                return (
                    f"I can't set {room} to {temp}°C. Please choose a temperature between "
                    f"{format_temperature(self.min_temp_c)} and "
                    f"{format_temperature(self.max_temp_c)}°C."
                )
            case MutationStatus.room_failed:
                return f"I couldn't create the room {room}. Please try again."
            case MutationStatus.update_failed:
                return f"I failed to update the temperature in {room}. Please try again."
            case MutationStatus.schedule_failed:
                return f"I couldn't schedule the change for {room}. Please try again."
        return f"I couldn't change the temperature in {room}."


__all__ = [
    "DELAY_TOO_LONG",
    "INVALID_DELAY",
    "INVALID_TEMPERATURE",
    "TemperatureMutator",
    "delay_to_timedelta",
    "describe_delay",
]
