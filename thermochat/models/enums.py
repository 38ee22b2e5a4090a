"""Domain enums for ThermoChat."""

from enum import StrEnum


class CommandName(StrEnum):
    get_temperature = "get_temperature"
    set_temperature = "set_temperature"
    create_room = "create_room"


class MutationStatus(StrEnum):
    applied = "applied"
    scheduled = "scheduled"
    invalid = "invalid"
    room_failed = "room_failed"
    update_failed = "update_failed"
    schedule_failed = "schedule_failed"
