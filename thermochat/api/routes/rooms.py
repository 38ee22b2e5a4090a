"""Read-only room and pending-change views for the signed-in owner."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from thermochat.api.dependencies import CoreDep, OwnerDep
from thermochat.core import StoreError
from thermochat.models.schemas import RoomResponse, ScheduledChangeResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _unavailable(exc: StoreError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Room store unavailable: {exc}",
    )


@router.get("", response_model=list[RoomResponse])
async def list_rooms(owner_id: OwnerDep, core: CoreDep) -> list[RoomResponse]:
    try:
        rooms = await core.rooms.list_rooms(owner_id)
    except StoreError as exc:
        logger.error("Listing rooms failed for owner=%s: %s", owner_id, exc)
        raise _unavailable(exc) from exc
    return [RoomResponse.model_validate(r) for r in rooms]


@router.get("/scheduled", response_model=list[ScheduledChangeResponse])
async def list_scheduled_changes(
    owner_id: OwnerDep,
    core: CoreDep,
) -> list[ScheduledChangeResponse]:
    """Pending temperature changes, soonest first."""
    try:
        changes = await core.schedule.pending_for(owner_id)
    except StoreError as exc:
        logger.error("Listing scheduled changes failed for owner=%s: %s", owner_id, exc)
        raise _unavailable(exc) from exc
    return [ScheduledChangeResponse.model_validate(c) for c in changes]
