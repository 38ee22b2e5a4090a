"""Prompt templates for ThermoChat.

Keep prompts short and structured to reduce tokens.
"""

from __future__ import annotations

from collections.abc import Iterable

THERMOSTAT_SYSTEM_PROMPT = (
    "You are a smart home assistant that manages room temperatures.\n"
    "- If the user asks for a room temperature, call get_temperature.\n"
    "- If the user wants to change a room's temperature, call set_temperature. "
    "If they want it to happen later, pass delayMinutes.\n"
    "- If the user asks to add a room, call create_room.\n"
    "- Call at most one function per reply.\n"
    "- If the request is unclear, ask the user for clarification.\n"
    "- Keep responses natural, friendly, and concise.\n"
    "Temperatures are in degrees Celsius."
)


def format_rooms_context(rooms: Iterable[str], *, max_rooms: int = 50) -> str:
    names = sorted(rooms)[: max(0, int(max_rooms))]
    if not names:
        return "ROOMS: none yet"
    return "ROOMS: " + ", ".join(names)


def build_system_prompt(rooms: Iterable[str]) -> str:
    return f"{THERMOSTAT_SYSTEM_PROMPT}\n\n{format_rooms_context(rooms)}"


__all__ = ["THERMOSTAT_SYSTEM_PROMPT", "build_system_prompt", "format_rooms_context"]
