"""Pydantic schemas for ThermoChat models and command arguments."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, field_validator

from thermochat.models.database import as_utc

# Stored timestamps come back naive from SQLite
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]

# ============================================================================
# Command arguments (validated tool-call payloads)
# ============================================================================


class RoomArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    room: str = Field(..., min_length=1, max_length=128)

    @field_validator("room")
    @classmethod
    def _room_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("room must not be blank")
        return v


class GetTemperatureArgs(RoomArgs):
    pass


class CreateRoomArgs(RoomArgs):
    pass


class SetTemperatureArgs(RoomArgs):
    temperature: float
    delay_minutes: float | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("delay_minutes", "delayMinutes"),
    )


# ============================================================================
# API payloads
# ============================================================================


class ChatMessage(BaseModel):
    """Chat message from user."""

    message: str = Field(..., min_length=1, max_length=10000)


class ChatResponse(BaseModel):
    """Reply to a chat turn."""

    message: str
    command: str | None = None
    timestamp: datetime


class ChatTurnItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    message: str
    response: str
    created_at: UtcDatetime


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    temperature_c: float
    updated_at: UtcDatetime


class ScheduledChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    room: str
    temperature_c: float
    due_at: UtcDatetime


class TickResponse(BaseModel):
    applied: int
    skipped: int = 0
    dropped: int = 0
    failed: int = 0
    error: str | None = None
    ran_at: datetime
