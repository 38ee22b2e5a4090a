"""ThermoChat integration clients."""

from .llm import LLMNotConfiguredError, LLMProvider, build_llm_provider

__all__ = [
    "LLMNotConfiguredError",
    "LLMProvider",
    "build_llm_provider",
]
