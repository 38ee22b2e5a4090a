"""ThermoChat LLM integration package.

This package provides:
- LLMProvider: litellm-backed provider with fallbacks
- Prompt templates
- Tool (function) schemas
"""

from .prompts import THERMOSTAT_SYSTEM_PROMPT, build_system_prompt, format_rooms_context
from .provider import LLMNotConfiguredError, LLMProvider, build_llm_provider
from .tools import (
    create_room_tool,
    get_temperature_tool,
    get_thermostat_tools,
    set_temperature_tool,
)

__all__ = [
    "THERMOSTAT_SYSTEM_PROMPT",
    "LLMNotConfiguredError",
    "LLMProvider",
    "build_llm_provider",
    "build_system_prompt",
    "create_room_tool",
    "format_rooms_context",
    "get_temperature_tool",
    "get_thermostat_tools",
    "set_temperature_tool",
]
