"""Chat API routes for the ThermoChat assistant."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from thermochat.api.dependencies import CoreDep, OrchestratorDep, OwnerDep
from thermochat.core import UnauthenticatedError
from thermochat.models.schemas import ChatMessage, ChatResponse, ChatTurnItem

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ChatResponse)
async def send_chat_message(
    payload: ChatMessage,
    owner_id: OwnerDep,
    orchestrator: OrchestratorDep,
) -> ChatResponse:
    """
    Send a message to the assistant.

    The assistant reads and changes room temperatures, now or after a
    delay, and creates rooms on request.
    """
    try:
        reply = await orchestrator.handle_turn(owner_id, payload.message)
    except UnauthenticatedError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    return ChatResponse(
        message=reply.message,
        command=reply.command,
        timestamp=datetime.now(UTC),
    )


@router.get("/history", response_model=list[ChatTurnItem])
async def get_chat_history(
    owner_id: OwnerDep,
    core: CoreDep,
    limit: int = Query(default=50, ge=1, le=500),
) -> list[ChatTurnItem]:
    """Get the owner's conversation history, oldest first."""
    try:
        turns = await core.history.recent(owner_id, limit=limit)
    except (SQLAlchemyError, TimeoutError) as exc:
        logger.error("Could not load chat history for owner=%s: %s", owner_id, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat history is temporarily unavailable",
        ) from exc
    return [ChatTurnItem.model_validate(t) for t in turns]
