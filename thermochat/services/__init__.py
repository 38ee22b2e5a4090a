"""ThermoChat application services."""

from .history_service import ChatHistoryService

__all__ = [
    "ChatHistoryService",
]
