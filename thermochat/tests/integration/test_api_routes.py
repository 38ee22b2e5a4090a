"""Integration tests for the chat, rooms and scheduler routes (/api/v1).

The core is wired over a per-test SQLite database and the LLM is mocked.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Generator
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from thermochat.api.dependencies import (
    CoreServices,
    build_core,
    get_core,
    get_llm_provider,
    get_settings_dependency,
)
from thermochat.api.main import app
from thermochat.config import Settings
from thermochat.integrations.llm import LLMProvider

OWNER_HEADERS = {"X-Owner-ID": "user-1"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def core(
    session_maker: async_sessionmaker[AsyncSession], settings: Settings
) -> CoreServices:
    return build_core(session_maker, settings)


@pytest.fixture()
def llm() -> AsyncMock:
    return AsyncMock(spec=LLMProvider)


@pytest.fixture(autouse=True)
def _override_deps(core: CoreServices, llm: AsyncMock, settings: Settings) -> Generator[None]:
    app.dependency_overrides[get_core] = lambda: core
    app.dependency_overrides[get_llm_provider] = lambda: llm
    app.dependency_overrides[get_settings_dependency] = lambda: settings
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
async def client() -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _tool_call(name: str, arguments: dict) -> dict:
    return {
        "content": "",
        "tool_calls": [
            {"id": "call_1", "function": {"name": name, "arguments": json.dumps(arguments)}}
        ],
    }


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class TestChatRoutes:
    async def test_requires_owner(self, client: AsyncClient, llm: AsyncMock) -> None:
        resp = await client.post("/api/v1/chat", json={"message": "hi"})

        assert resp.status_code == 401
        llm.chat.assert_not_awaited()

    async def test_empty_message_rejected(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/chat", json={"message": ""}, headers=OWNER_HEADERS)

        assert resp.status_code == 422

    async def test_plain_reply(self, client: AsyncClient, llm: AsyncMock) -> None:
        llm.chat.return_value = {"content": "Hello!"}

        resp = await client.post("/api/v1/chat", json={"message": "hi"}, headers=OWNER_HEADERS)

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Hello!"
        assert body["command"] is None
        assert "timestamp" in body

    async def test_command_reply(self, client: AsyncClient, llm: AsyncMock) -> None:
        llm.chat.return_value = _tool_call("set_temperature", {"room": "den", "temperature": 20})

        resp = await client.post(
            "/api/v1/chat", json={"message": "den to 20"}, headers=OWNER_HEADERS
        )

        assert resp.status_code == 200
        assert resp.json()["command"] == "set_temperature"
        assert resp.json()["message"] == "The temperature in den has been updated to 20°C."

    async def test_not_configured(self, client: AsyncClient) -> None:
        app.dependency_overrides[get_llm_provider] = lambda: None

        resp = await client.post("/api/v1/chat", json={"message": "hi"}, headers=OWNER_HEADERS)

        assert resp.status_code == 200
        assert "not fully configured" in resp.json()["message"]

    async def test_history(self, client: AsyncClient, llm: AsyncMock) -> None:
        llm.chat.return_value = {"content": "Hello!"}
        await client.post("/api/v1/chat", json={"message": "hi"}, headers=OWNER_HEADERS)

        resp = await client.get("/api/v1/chat/history", headers=OWNER_HEADERS)
        other = await client.get("/api/v1/chat/history", headers={"X-Owner-ID": "user-2"})

        assert resp.status_code == 200
        assert [(t["message"], t["response"]) for t in resp.json()] == [("hi", "Hello!")]
        assert other.json() == []


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------


class TestRoomRoutes:
    async def test_list_rooms(self, client: AsyncClient, core: CoreServices) -> None:
        await core.rooms.upsert_temperature("user-1", "kitchen", 21.0)
        await core.rooms.upsert_temperature("user-2", "garage", 9.0)

        resp = await client.get("/api/v1/rooms", headers=OWNER_HEADERS)

        assert resp.status_code == 200
        rooms = resp.json()
        assert [(r["name"], r["temperature_c"]) for r in rooms] == [("kitchen", 21.0)]

    async def test_list_scheduled(self, client: AsyncClient, core: CoreServices) -> None:
        result = await core.mutator.set_temperature("user-1", "kitchen", 25, 5)
        assert result.ok

        resp = await client.get("/api/v1/rooms/scheduled", headers=OWNER_HEADERS)

        assert resp.status_code == 200
        pending = resp.json()
        assert len(pending) == 1
        assert pending[0]["room"] == "kitchen"
        assert pending[0]["temperature_c"] == 25.0
        assert datetime.fromisoformat(pending[0]["due_at"]).utcoffset() == timedelta(0)

    async def test_requires_owner(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/rooms")

        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Scheduler tick trigger
# ---------------------------------------------------------------------------


class TestSchedulerRoutes:
    async def test_tick(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/scheduler/tick")

        assert resp.status_code == 200
        body = resp.json()
        assert body["applied"] == 0
        assert body["error"] is None

    async def test_tick_applies_due_changes(self, client: AsyncClient, core: CoreServices) -> None:
        await core.rooms.insert_if_absent("user-1", "kitchen", 22.0)
        await core.schedule.add("user-1", "kitchen", 24.0, core.runner._clock())

        resp = await client.get("/api/v1/scheduler/tick")

        assert resp.status_code == 200
        assert resp.json()["applied"] == 1
        assert await core.rooms.get_temperature("user-1", "kitchen") == 24.0

    async def test_cron_secret_enforced(self, client: AsyncClient, settings: Settings) -> None:
        secured = settings.model_copy(update={"cron_secret": "tick-secret"})
        app.dependency_overrides[get_settings_dependency] = lambda: secured

        denied = await client.post("/api/v1/scheduler/tick")
        wrong = await client.post(
            "/api/v1/scheduler/tick", headers={"Authorization": "Bearer nope"}
        )
        allowed = await client.post(
            "/api/v1/scheduler/tick", headers={"Authorization": "Bearer tick-secret"}
        )

        assert denied.status_code == 403
        assert wrong.status_code == 403
        assert allowed.status_code == 200

    async def test_store_outage_returns_503(self, client: AsyncClient, core: CoreServices) -> None:
        from thermochat.core import StoreError

        core.runner._schedule = AsyncMock()
        core.runner._schedule.due.side_effect = StoreError("read due changes timed out")

        resp = await client.post("/api/v1/scheduler/tick")

        assert resp.status_code == 503
        assert "timed out" in resp.json()["error"]


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    async def test_liveness(self, client: AsyncClient) -> None:
        resp = await client.get("/health/live")

        assert resp.status_code == 200
        assert resp.json() == {"status": "alive"}

    async def test_root(self, client: AsyncClient) -> None:
        resp = await client.get("/")

        assert resp.json()["endpoints"]["chat"] == "/api/v1/chat"
