"""Shared result and error types for the ThermoChat core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from thermochat.models.enums import CommandName, MutationStatus


def format_temperature(value: float) -> str:
    """Render 25.0 as "25" and 21.55 as "21.6"."""
    rounded = round(float(value), 1)
    if rounded.is_integer():
        return str(int(rounded))
    return str(rounded)


class StoreError(Exception):
    """A room or schedule store call failed or timed out."""


class UnauthenticatedError(Exception):
    """A turn arrived without an owner identity."""


@dataclass(frozen=True, slots=True)
class Outcome:
    """Success or failure of a resolver operation."""

    ok: bool
    reason: str | None = None
    created: bool = False

    @classmethod
    def success(cls, *, created: bool = False) -> Outcome:
        return cls(ok=True, created=created)

    @classmethod
    def failure(cls, reason: str) -> Outcome:
        return cls(ok=False, reason=reason)


@dataclass(frozen=True, slots=True)
class MutationResult:
    status: MutationStatus
    room: str
    temperature_c: float
    delay_minutes: float | None = None
    due_at: datetime | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (MutationStatus.applied, MutationStatus.scheduled)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of one dispatched command.

    ``message`` is ``None`` for the silent sentinel: the command succeeded but
    there is nothing to show the user.
    """

    message: str | None
    command: CommandName | None = None
    ok: bool = True
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def silent(cls, command: CommandName, **details: Any) -> CommandResult:
        return cls(message=None, command=command, details=details)

    @property
    def is_silent(self) -> bool:
        return self.message is None


@dataclass(slots=True)
class TickResult:
    """Counts from one scheduler tick; ``error`` set when the store was unreachable."""

    applied: int = 0
    skipped: int = 0
    dropped: int = 0
    failed: int = 0
    error: str | None = None
    ran_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict[str, Any]:
        return {
            "applied": self.applied,
            "skipped": self.skipped,
            "dropped": self.dropped,
            "failed": self.failed,
            "error": self.error,
            "ran_at": self.ran_at,
        }


__all__ = [
    "CommandResult",
    "MutationResult",
    "Outcome",
    "StoreError",
    "TickResult",
    "UnauthenticatedError",
    "format_temperature",
]
