"""Apply scheduled temperature changes once they fall due.

``tick()`` is safe to run from the in-process interval job, from the external
HTTP trigger, or from both at once: each due entry is claimed by a conditional
delete in the same transaction that writes the room, so a second runner finds
the entry gone and skips it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from thermochat.core.mutator import TemperatureMutator
from thermochat.core.results import StoreError, TickResult
from thermochat.core.stores import ScheduledChangeStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SchedulerRunner:
    def __init__(
        self,
        schedule_store: ScheduledChangeStore,
        mutator: TemperatureMutator,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._schedule = schedule_store
        self._mutator = mutator
        self._clock = clock

    async def tick(self, now: datetime | None = None) -> TickResult:
        """Apply every change due at ``now``; never raises."""
        now = now or self._clock()
        result = TickResult(ran_at=now)

        try:
            due = await self._schedule.due(now)
        except StoreError as exc:
            logger.error("Scheduler tick could not read due changes: %s", exc)
            result.error = str(exc)
            return result

        if not due:
            logger.debug("No scheduled temperature changes due")
            return result

        for change in due:
            try:
                async with self._schedule.claim(change.id) as session:
                    if session is None:
                        result.skipped += 1
                        continue
                    applied = await self._mutator.apply_scheduled(change, session=session)
            except StoreError as exc:
                logger.warning(
                    "Scheduled change %s for %r not applied, will retry: %s",
                    change.id,
                    change.room,
                    exc,
                )
                result.failed += 1
                continue

            if applied:
                logger.info(
                    "Applied scheduled change %s: %r for owner=%s -> %.1f°C",
                    change.id,
                    change.room,
                    change.owner_id,
                    change.temperature_c,
                )
                result.applied += 1
            else:
                logger.warning(
                    "Dropped scheduled change %s: room %r no longer exists for owner=%s",
                    change.id,
                    change.room,
                    change.owner_id,
                )
                result.dropped += 1

        logger.info(
            "Scheduler tick: applied=%d skipped=%d dropped=%d failed=%d",
            result.applied,
            result.skipped,
            result.dropped,
            result.failed,
        )
        return result


__all__ = ["SchedulerRunner"]
