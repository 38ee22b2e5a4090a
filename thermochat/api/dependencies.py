"""FastAPI dependency injection helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from thermochat.config import SETTINGS, Settings
from thermochat.core import (
    CommandDispatcher,
    ConversationOrchestrator,
    RoomResolver,
    RoomStore,
    ScheduledChangeStore,
    SchedulerRunner,
    TemperatureMutator,
)
from thermochat.integrations.llm import LLMNotConfiguredError, LLMProvider, build_llm_provider
from thermochat.models.database import get_session_maker
from thermochat.services import ChatHistoryService

# ---------------------------------------------------------------------------
# Settings dependency
# ---------------------------------------------------------------------------


def get_settings_dependency() -> Settings:
    return SETTINGS


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


# ---------------------------------------------------------------------------
# Identity dependency
# ---------------------------------------------------------------------------


async def get_owner_id(
    x_owner_id: Annotated[str | None, Header()] = None,
) -> str:
    """Owner identity supplied by the session provider in front of the API."""
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return x_owner_id.strip()


OwnerDep = Annotated[str, Depends(get_owner_id)]


# ---------------------------------------------------------------------------
# Core services
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CoreServices:
    rooms: RoomStore
    schedule: ScheduledChangeStore
    resolver: RoomResolver
    mutator: TemperatureMutator
    dispatcher: CommandDispatcher
    runner: SchedulerRunner
    history: ChatHistoryService


def build_core(
    session_maker: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> CoreServices:
    """Wire the stateless core over one session factory."""
    rooms = RoomStore(session_maker, timeout_s=settings.store_timeout_s)
    schedule = ScheduledChangeStore(session_maker, timeout_s=settings.store_timeout_s)
    resolver = RoomResolver(rooms, default_temp_c=settings.default_room_temp_c)
    mutator = TemperatureMutator(
        resolver,
        rooms,
        schedule,
        min_temp_c=settings.min_temp_c,
        max_temp_c=settings.max_temp_c,
        max_delay_minutes=settings.max_delay_minutes,
    )
    dispatcher = CommandDispatcher(
        resolver,
        mutator,
        rooms,
        announce_room_creation=settings.announce_room_creation,
    )
    return CoreServices(
        rooms=rooms,
        schedule=schedule,
        resolver=resolver,
        mutator=mutator,
        dispatcher=dispatcher,
        runner=SchedulerRunner(schedule, mutator),
        history=ChatHistoryService(session_maker, timeout_s=settings.store_timeout_s),
    )


def get_core(settings: SettingsDep) -> CoreServices:
    return build_core(get_session_maker(), settings)


CoreDep = Annotated[CoreServices, Depends(get_core)]


def get_llm_provider(settings: SettingsDep) -> LLMProvider | None:
    try:
        return build_llm_provider(settings)
    except LLMNotConfiguredError:
        return None


LLMDep = Annotated[LLMProvider | None, Depends(get_llm_provider)]


def get_orchestrator(
    core: CoreDep,
    llm: LLMDep,
    settings: SettingsDep,
) -> ConversationOrchestrator:
    return ConversationOrchestrator(
        llm,
        core.dispatcher,
        core.resolver,
        core.history,
        llm_timeout_s=settings.llm_timeout_s,
    )


OrchestratorDep = Annotated[ConversationOrchestrator, Depends(get_orchestrator)]


__all__ = [
    "CoreDep",
    "CoreServices",
    "LLMDep",
    "OrchestratorDep",
    "OwnerDep",
    "SettingsDep",
    "build_core",
    "get_core",
    "get_llm_provider",
    "get_orchestrator",
    "get_owner_id",
    "get_settings_dependency",
]
