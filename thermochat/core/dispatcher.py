"""Dispatch a structured command chosen by the LLM to the room core."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from thermochat.core.mutator import TemperatureMutator
from thermochat.core.results import CommandResult, StoreError, format_temperature
from thermochat.core.room_resolver import RoomResolver, normalize_room_name
from thermochat.core.stores import RoomStore
from thermochat.models.enums import CommandName
from thermochat.models.schemas import CreateRoomArgs, GetTemperatureArgs, SetTemperatureArgs

logger = logging.getLogger(__name__)

_ARG_MODELS: dict[CommandName, type[BaseModel]] = {
    CommandName.get_temperature: GetTemperatureArgs,
    CommandName.set_temperature: SetTemperatureArgs,
    CommandName.create_room: CreateRoomArgs,
}


class CommandDispatcher:
    """Map ``get_temperature`` / ``set_temperature`` / ``create_room`` to the core.

    Every path returns a :class:`CommandResult`; nothing here raises to the
    caller.
    """

    def __init__(
        self,
        resolver: RoomResolver,
        mutator: TemperatureMutator,
        room_store: RoomStore,
        *,
        announce_room_creation: bool = True,
    ) -> None:
        self._resolver = resolver
        self._mutator = mutator
        self._rooms = room_store
        self.announce_room_creation = announce_room_creation

    async def dispatch(
        self,
        owner_id: str,
        name: str,
        arguments: Mapping[str, Any] | None,
    ) -> CommandResult:
        try:
            command = CommandName(name)
        except ValueError:
            logger.warning("Unrecognized command %r for owner=%s", name, owner_id)
            return CommandResult(
                message="Sorry, I don't recognize that operation.",
                ok=False,
            )

        try:
            args = _ARG_MODELS[command].model_validate(dict(arguments or {}))
        except ValidationError as exc:
            logger.warning("Invalid arguments for %s: %s", command, exc.errors())
            return CommandResult(
                message="Sorry, I couldn't understand the details of that request.",
                command=command,
                ok=False,
            )

        match command:
            case CommandName.get_temperature:
                return await self.get_temperature(owner_id, args.room)
            case CommandName.set_temperature:
                return await self.set_temperature(
                    owner_id, args.room, args.temperature, args.delay_minutes
                )
            case CommandName.create_room:
                return await self.create_room(owner_id, args.room)

    async def get_temperature(self, owner_id: str, room: str) -> CommandResult:
        name = normalize_room_name(room)
        known = await self._resolver.lookup_rooms(owner_id)
        if known is None:
            return CommandResult(
                message=f"I don't have data for {name} right now.",
                command=CommandName.get_temperature,
                ok=False,
            )
        if name not in known:
            return CommandResult(
                message=f"The room {name} does not exist.",
                command=CommandName.get_temperature,
                ok=False,
            )

        try:
            temperature = await self._rooms.get_temperature(owner_id, name)
        except StoreError as exc:
            logger.warning("Temperature read failed for %r owner=%s: %s", name, owner_id, exc)
            temperature = None
        if temperature is None:
            return CommandResult(
                message=f"I don't have data for {name} right now.",
                command=CommandName.get_temperature,
                ok=False,
            )
        return CommandResult(
            message=f"{name} is at {format_temperature(temperature)}°C",
            command=CommandName.get_temperature,
            details={"room": name, "temperature_c": temperature},
        )

    async def set_temperature(
        self,
        owner_id: str,
        room: str,
        temperature_c: float,
        delay_minutes: float | None = None,
    ) -> CommandResult:
        result = await self._mutator.set_temperature(owner_id, room, temperature_c, delay_minutes)
        details: dict[str, Any] = {
            "room": result.room,
            "temperature_c": result.temperature_c,
            "status": str(result.status),
        }
        if result.due_at is not None:
            details["due_at"] = result.due_at.isoformat()
        return CommandResult(
            message=self._mutator.describe(result),
            command=CommandName.set_temperature,
            ok=result.ok,
            details=details,
        )

    async def create_room(self, owner_id: str, room: str) -> CommandResult:
        name = normalize_room_name(room)
        outcome = await self._resolver.ensure_room(owner_id, name)
        if not outcome.ok:
            return CommandResult(
                message=f"I couldn't create the room {name}. Please try again.",
                command=CommandName.create_room,
                ok=False,
            )
        if not self.announce_room_creation:
            return CommandResult.silent(CommandName.create_room, room=name, created=outcome.created)
        if outcome.created:
            default = format_temperature(self._resolver.default_temp_c)
            message = f"The room {name} has been created at {default}°C."
        else:
            message = f"The room {name} already exists."
        return CommandResult(
            message=message,
            command=CommandName.create_room,
            details={"room": name, "created": outcome.created},
        )


__all__ = ["CommandDispatcher"]
