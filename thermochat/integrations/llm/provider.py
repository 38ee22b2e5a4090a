"""ThermoChat LLM provider abstraction.

Features:
- Unified chat completion interface using litellm
- Tool/function calling support (OpenAI tool schema)
- Fallback chain across configured providers
- Per-request timeout

This module does not implement tool execution; it only defines the LLM interface.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from thermochat.config import Settings, get_settings

logger = logging.getLogger(__name__)


class LLMNotConfiguredError(RuntimeError):
    """No provider has an API key."""


def _require_litellm() -> Any:
    try:
        import litellm

        return litellm
    except Exception as e:  # pragma: no cover
        raise RuntimeError("litellm is required. Install with: pip install litellm") from e


class LLMProvider:
    """
    Simple LLM provider for chat functionality.

    Provides a unified interface for calling different LLM providers
    (OpenAI, Anthropic, Gemini) with tool support.
    """

    PROVIDER_MODELS: ClassVar[dict[str, str]] = {
        "openai": "gpt-4o",
        "anthropic": "claude-sonnet-4-20250514",
        "gemini": "gemini-2.0-flash",
    }

    def __init__(
        self,
        provider: str,
        api_key: str,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        timeout_s: float = 30.0,
        fallbacks: list[LLMProvider] | None = None,
    ) -> None:
        self.provider = provider
        self.api_key = api_key
        self.model = model or self.PROVIDER_MODELS.get(provider, "gpt-4o")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s
        self.fallbacks: list[LLMProvider] = fallbacks or []

    async def chat(
        self,
        messages: list[dict[str, Any]],
        system: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            system: Optional system prompt
            tools: Optional list of tool definitions
            **kwargs: Additional provider-specific options

        Returns:
            Dict with 'content' and optionally 'tool_calls'
        """
        try:
            return await self._chat_once(messages, system=system, tools=tools, **kwargs)
        except Exception as e:
            logger.warning("LLM request failed on provider=%s: %s; trying fallbacks", self.provider, e)
            for fallback in self.fallbacks:
                try:
                    result = await fallback._chat_once(messages, system=system, tools=tools, **kwargs)
                    logger.info("LLM fallback succeeded via provider=%s", fallback.provider)
                    return result
                except Exception as fe:
                    logger.warning("LLM fallback failed provider=%s: %s", fallback.provider, fe)
            logger.error("LLM request failed: all providers exhausted")
            raise

    async def _chat_once(
        self,
        messages: list[dict[str, Any]],
        system: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        litellm = _require_litellm()

        full_messages = []
        if system:
            full_messages.append({"role": "system", "content": system})
        full_messages.extend(messages)

        # api_key is passed per call rather than via os.environ
        if self.provider == "anthropic":
            model_str = f"anthropic/{self.model}"
        elif self.provider == "gemini":
            model_str = f"gemini/{self.model}"
        else:
            model_str = self.model

        response = await litellm.acompletion(
            model=model_str,
            messages=full_messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            tools=tools if tools else None,
            api_key=self.api_key,
            timeout=self.timeout_s,
            **kwargs,
        )

        choice = response.choices[0]
        content = choice.message.content or ""

        result: dict[str, Any] = {"content": content}

        if getattr(choice.message, "tool_calls", None):
            result["tool_calls"] = [
                {
                    "id": tc.id,
                    "function": {
                        "name": tc.function.name,
                        "arguments": tc.function.arguments,
                    },
                }
                for tc in choice.message.tool_calls
            ]

        return result


def build_llm_provider(settings: Settings | None = None) -> LLMProvider:
    """Build the configured provider chain; the first keyed provider is primary."""
    settings = settings or get_settings()

    candidates = [
        (name, str(cfg["api_key"]))
        for name, cfg in settings.llm_provider_config.items()
        if cfg["configured"]
    ]
    if not candidates:
        raise LLMNotConfiguredError("No LLM provider configured. Set an API key.")

    providers = [
        LLMProvider(provider=p, api_key=k, timeout_s=settings.llm_timeout_s)
        for p, k in candidates
    ]
    if settings.llm_model:
        providers[0].model = settings.llm_model
    providers[0].fallbacks = providers[1:]
    return providers[0]


__all__ = ["LLMNotConfiguredError", "LLMProvider", "build_llm_provider"]
