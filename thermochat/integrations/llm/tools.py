"""Tool (function) definitions in OpenAI tool schema format.

These schemas can be passed directly as the `tools` parameter to OpenAI-style
chat completion APIs (and to litellm).
"""

from __future__ import annotations

from typing import Any

_ROOM_PROPERTY = {
    "type": "string",
    "description": "The name of the room (e.g., bedroom, living room, kitchen).",
}


def get_temperature_tool() -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": "get_temperature",
            "description": "Retrieve the current temperature of a room.",
            "parameters": {
                "type": "object",
                "properties": {"room": _ROOM_PROPERTY},
                "required": ["room"],
                "additionalProperties": False,
            },
        },
    }


def set_temperature_tool() -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": "set_temperature",
            "description": (
                "Set a new temperature for a room, now or after a delay. "
                "Unknown rooms are created automatically."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "room": _ROOM_PROPERTY,
                    "temperature": {
                        "type": "number",
                        "description": "The new temperature to set (in degrees Celsius).",
                    },
                    "delayMinutes": {
                        "type": "number",
                        "minimum": 0,
                        "description": "Optional delay in minutes before the change applies.",
                    },
                },
                "required": ["room", "temperature"],
                "additionalProperties": False,
            },
        },
    }


def create_room_tool() -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": "create_room",
            "description": "Create a new room at the default temperature.",
            "parameters": {
                "type": "object",
                "properties": {"room": _ROOM_PROPERTY},
                "required": ["room"],
                "additionalProperties": False,
            },
        },
    }


def get_thermostat_tools() -> list[dict[str, Any]]:
    return [get_temperature_tool(), set_temperature_tool(), create_room_tool()]


__all__ = [
    "create_room_tool",
    "get_temperature_tool",
    "get_thermostat_tools",
    "set_temperature_tool",
]
