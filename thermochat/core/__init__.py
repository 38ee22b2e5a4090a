"""Command dispatch and scheduled-change core for ThermoChat."""

from __future__ import annotations

from .dispatcher import CommandDispatcher
from .mutator import TemperatureMutator
from .orchestrator import ConversationOrchestrator, TurnReply
from .results import (
    CommandResult,
    MutationResult,
    Outcome,
    StoreError,
    TickResult,
    UnauthenticatedError,
)
from .room_resolver import RoomResolver, normalize_room_name
from .scheduler_runner import SchedulerRunner
from .stores import RoomStore, ScheduledChangeStore

__all__ = [
    "CommandDispatcher",
    "CommandResult",
    "ConversationOrchestrator",
    "MutationResult",
    "Outcome",
    "RoomResolver",
    "RoomStore",
    "ScheduledChangeStore",
    "SchedulerRunner",
    "StoreError",
    "TemperatureMutator",
    "TickResult",
    "TurnReply",
    "UnauthenticatedError",
    "normalize_room_name",
]
