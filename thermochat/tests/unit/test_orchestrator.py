"""Tests for thermochat.core.orchestrator with a mocked LLM provider."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock

import pytest

from thermochat.core import (
    CommandDispatcher,
    ConversationOrchestrator,
    RoomResolver,
    RoomStore,
    SchedulerRunner,
    UnauthenticatedError,
)
from thermochat.core.orchestrator import (
    APOLOGY_REPLY,
    FALLBACK_REPLY,
    NOT_CONFIGURED_REPLY,
    SILENT_REPLY,
    parse_tool_args,
)
from thermochat.integrations.llm import LLMProvider
from thermochat.services import ChatHistoryService

OWNER = "user-1"


def _tool_call(name: str, arguments: dict[str, Any], content: str = "") -> dict[str, Any]:
    return {
        "content": content,
        "tool_calls": [
            {"id": "call_1", "function": {"name": name, "arguments": json.dumps(arguments)}}
        ],
    }


@pytest.fixture()
def llm() -> AsyncMock:
    return AsyncMock(spec=LLMProvider)


@pytest.fixture()
def orchestrator(
    llm: AsyncMock,
    dispatcher: CommandDispatcher,
    resolver: RoomResolver,
    history: ChatHistoryService,
) -> ConversationOrchestrator:
    return ConversationOrchestrator(llm, dispatcher, resolver, history, llm_timeout_s=5)


class TestParseToolArgs:
    def test_variants(self) -> None:
        assert parse_tool_args('{"room": "kitchen"}') == {"room": "kitchen"}
        assert parse_tool_args({"room": "kitchen"}) == {"room": "kitchen"}
        assert parse_tool_args("not json") == {}
        assert parse_tool_args("[1, 2]") == {}
        assert parse_tool_args(None) == {}


class TestHandleTurn:
    async def test_requires_owner(self, orchestrator: ConversationOrchestrator) -> None:
        with pytest.raises(UnauthenticatedError):
            await orchestrator.handle_turn(None, "hello")
        with pytest.raises(UnauthenticatedError):
            await orchestrator.handle_turn("  ", "hello")

    async def test_plain_text_passes_through(
        self, orchestrator: ConversationOrchestrator, llm: AsyncMock
    ) -> None:
        llm.chat.return_value = {"content": "Hi! Which room should I check?"}

        reply = await orchestrator.handle_turn(OWNER, "hello")

        assert reply.message == "Hi! Which room should I check?"
        assert reply.command is None

    async def test_blank_text_falls_back(
        self, orchestrator: ConversationOrchestrator, llm: AsyncMock
    ) -> None:
        llm.chat.return_value = {"content": "   "}

        reply = await orchestrator.handle_turn(OWNER, "hmm")

        assert reply.message == FALLBACK_REPLY

    async def test_prompt_lists_owner_rooms(
        self,
        orchestrator: ConversationOrchestrator,
        llm: AsyncMock,
        room_store: RoomStore,
    ) -> None:
        await room_store.upsert_temperature(OWNER, "kitchen", 21.0)
        await room_store.upsert_temperature("user-2", "garage", 10.0)
        llm.chat.return_value = {"content": "ok"}

        await orchestrator.handle_turn(OWNER, "what rooms do I have?")

        system = llm.chat.await_args.kwargs["system"]
        assert "ROOMS: kitchen" in system
        assert "garage" not in system
        tool_names = {t["function"]["name"] for t in llm.chat.await_args.kwargs["tools"]}
        assert tool_names == {"get_temperature", "set_temperature", "create_room"}

    async def test_tool_call_is_dispatched(
        self,
        orchestrator: ConversationOrchestrator,
        llm: AsyncMock,
        room_store: RoomStore,
    ) -> None:
        llm.chat.return_value = _tool_call("set_temperature", {"room": "den", "temperature": 21})

        reply = await orchestrator.handle_turn(OWNER, "set the den to 21")

        assert reply.command == "set_temperature"
        assert reply.message == "The temperature in den has been updated to 21°C."
        assert await room_store.get_temperature(OWNER, "den") == 21.0

    async def test_only_first_tool_call_runs(
        self,
        orchestrator: ConversationOrchestrator,
        llm: AsyncMock,
        room_store: RoomStore,
    ) -> None:
        response = _tool_call("create_room", {"room": "den"})
        response["tool_calls"].append(
            {"id": "call_2", "function": {"name": "create_room", "arguments": '{"room": "loft"}'}}
        )
        llm.chat.return_value = response

        await orchestrator.handle_turn(OWNER, "add den and loft")

        assert await room_store.list_names(OWNER) == {"den"}

    async def test_llm_failure_apologizes(
        self, orchestrator: ConversationOrchestrator, llm: AsyncMock
    ) -> None:
        llm.chat.side_effect = RuntimeError("upstream 500")

        reply = await orchestrator.handle_turn(OWNER, "set kitchen to 20")

        assert reply.message == APOLOGY_REPLY

    async def test_llm_timeout_apologizes(
        self,
        llm: AsyncMock,
        dispatcher: CommandDispatcher,
        resolver: RoomResolver,
    ) -> None:
        llm.chat.side_effect = TimeoutError()
        orchestrator = ConversationOrchestrator(llm, dispatcher, resolver, llm_timeout_s=0.1)

        reply = await orchestrator.handle_turn(OWNER, "hello")

        assert reply.message == APOLOGY_REPLY

    async def test_not_configured(
        self, dispatcher: CommandDispatcher, resolver: RoomResolver
    ) -> None:
        orchestrator = ConversationOrchestrator(None, dispatcher, resolver)

        reply = await orchestrator.handle_turn(OWNER, "hello")

        assert reply.message == NOT_CONFIGURED_REPLY

    async def test_silent_result_uses_llm_text(
        self,
        llm: AsyncMock,
        resolver: RoomResolver,
        mutator,
        room_store: RoomStore,
    ) -> None:
        quiet = CommandDispatcher(resolver, mutator, room_store, announce_room_creation=False)
        orchestrator = ConversationOrchestrator(llm, quiet, resolver)

        llm.chat.return_value = _tool_call("create_room", {"room": "den"}, content="Added!")
        assert (await orchestrator.handle_turn(OWNER, "add a den")).message == "Added!"

        llm.chat.return_value = _tool_call("create_room", {"room": "loft"})
        assert (await orchestrator.handle_turn(OWNER, "add a loft")).message == SILENT_REPLY


class TestHistory:
    async def test_turns_are_recorded(
        self,
        orchestrator: ConversationOrchestrator,
        llm: AsyncMock,
        history: ChatHistoryService,
    ) -> None:
        llm.chat.return_value = {"content": "Hello there"}

        await orchestrator.handle_turn(OWNER, "hi")

        turns = await history.recent(OWNER)
        assert [(t.message, t.response) for t in turns] == [("hi", "Hello there")]

    async def test_history_failure_is_not_fatal(
        self,
        llm: AsyncMock,
        dispatcher: CommandDispatcher,
        resolver: RoomResolver,
    ) -> None:
        broken = AsyncMock(spec=ChatHistoryService)
        broken.record.side_effect = RuntimeError("disk full")
        orchestrator = ConversationOrchestrator(llm, dispatcher, resolver, broken)
        llm.chat.return_value = {"content": "Hello"}

        reply = await orchestrator.handle_turn(OWNER, "hi")

        assert reply.message == "Hello"


class TestKitchenScenario:
    async def test_scheduled_change_end_to_end(
        self,
        orchestrator: ConversationOrchestrator,
        llm: AsyncMock,
        runner: SchedulerRunner,
        room_store: RoomStore,
        clock,
    ) -> None:
        llm.chat.return_value = _tool_call("create_room", {"room": "kitchen"})
        reply = await orchestrator.handle_turn(OWNER, "add a kitchen")
        assert reply.message == "The room kitchen has been created at 22°C."

        llm.chat.return_value = _tool_call(
            "set_temperature", {"room": "kitchen", "temperature": 25, "delayMinutes": 5}
        )
        reply = await orchestrator.handle_turn(OWNER, "set the kitchen to 25 in 5 minutes")
        assert "will be set to 25°C in 5 minutes" in reply.message

        llm.chat.return_value = _tool_call("get_temperature", {"room": "kitchen"})
        reply = await orchestrator.handle_turn(OWNER, "how warm is the kitchen?")
        assert reply.message == "kitchen is at 22°C"

        clock.advance(minutes=5)
        tick = await runner.tick()
        assert tick.applied == 1

        reply = await orchestrator.handle_turn(OWNER, "how warm is the kitchen now?")
        assert reply.message == "kitchen is at 25°C"
        assert await room_store.get_temperature(OWNER, "kitchen") == 25.0
