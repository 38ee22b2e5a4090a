"""Conversation orchestration: free text in, one dispatched command, reply out."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from thermochat.core.dispatcher import CommandDispatcher
from thermochat.core.results import UnauthenticatedError
from thermochat.core.room_resolver import RoomResolver
from thermochat.integrations.llm.prompts import build_system_prompt
from thermochat.integrations.llm.provider import LLMProvider
from thermochat.integrations.llm.tools import get_thermostat_tools
from thermochat.services.history_service import ChatHistoryService

logger = logging.getLogger(__name__)

NOT_CONFIGURED_REPLY = (
    "I'm sorry, but I'm not fully configured yet. "
    "Please add an LLM API key to enable the assistant."
)
APOLOGY_REPLY = "Sorry, I'm having trouble right now. Please try again shortly."
FALLBACK_REPLY = "I'm not sure how to help with that."
SILENT_REPLY = "Done."


@dataclass(slots=True)
class TurnReply:
    message: str
    command: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


def parse_tool_args(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
            return parsed if isinstance(parsed, dict) else {}
        except (ValueError, TypeError):
            return {}
    return {}


class ConversationOrchestrator:
    """Single entry point for a chat turn.

    The LLM either answers in plain text, which is passed through unchanged,
    or selects one command, which is dispatched. Whatever happens the turn
    ends in a reply string and is appended to the owner's history.
    """

    def __init__(
        self,
        llm: LLMProvider | None,
        dispatcher: CommandDispatcher,
        resolver: RoomResolver,
        history: ChatHistoryService | None = None,
        *,
        llm_timeout_s: float = 30.0,
    ) -> None:
        self._llm = llm
        self._dispatcher = dispatcher
        self._resolver = resolver
        self._history = history
        self._llm_timeout_s = llm_timeout_s

    async def handle_turn(self, owner_id: str | None, text: str) -> TurnReply:
        if not owner_id or not owner_id.strip():
            raise UnauthenticatedError("A signed-in user is required")

        reply = await self._run_turn(owner_id, text)
        await self._record(owner_id, text, reply.message)
        return reply

    async def _run_turn(self, owner_id: str, text: str) -> TurnReply:
        if self._llm is None:
            return TurnReply(message=NOT_CONFIGURED_REPLY)

        rooms = await self._resolver.rooms_for(owner_id)
        try:
            async with asyncio.timeout(self._llm_timeout_s):
                response = await self._llm.chat(
                    messages=[{"role": "user", "content": text}],
                    system=build_system_prompt(rooms),
                    tools=get_thermostat_tools(),
                )
        except Exception:
            logger.error("LLM request failed for owner=%s", owner_id, exc_info=True)
            return TurnReply(message=APOLOGY_REPLY)

        content: str = response.get("content") or ""
        tool_calls: list[dict[str, Any]] = response.get("tool_calls") or []
        if not tool_calls:
            return TurnReply(message=content if content.strip() else FALLBACK_REPLY)

        if len(tool_calls) > 1:
            logger.warning(
                "LLM returned %d tool calls for owner=%s; only the first is executed",
                len(tool_calls),
                owner_id,
            )
        func_info = tool_calls[0].get("function", {})
        func_name = str(func_info.get("name", ""))
        func_args = parse_tool_args(func_info.get("arguments"))

        try:
            result = await self._dispatcher.dispatch(owner_id, func_name, func_args)
        except Exception:
            logger.error("Command %s failed for owner=%s", func_name, owner_id, exc_info=True)
            return TurnReply(message=APOLOGY_REPLY, command=func_name)

        if result.message is None:
            message = content if content.strip() else SILENT_REPLY
        else:
            message = result.message
        return TurnReply(
            message=message,
            command=str(result.command) if result.command else func_name,
            details=dict(result.details),
        )

    async def _record(self, owner_id: str, text: str, reply: str) -> None:
        if self._history is None:
            return
        try:
            await self._history.record(owner_id, text, reply)
        except Exception as exc:
            logger.debug("History logging error (non-critical): %s", exc)


__all__ = ["ConversationOrchestrator", "TurnReply", "parse_tool_args"]
