"""API route registration for ThermoChat."""

from fastapi import APIRouter

from . import chat, rooms, scheduler

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(rooms.router, prefix="/rooms", tags=["rooms"])
api_router.include_router(scheduler.router, prefix="/scheduler", tags=["scheduler"])


__all__ = [
    "api_router",
    "chat",
    "rooms",
    "scheduler",
]
