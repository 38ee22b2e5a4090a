"""External trigger for the scheduled-change runner.

Lets an outside cron (or any periodic HTTP caller) run a tick in addition
to, or instead of, the in-process interval job. Ticks are idempotent, so
both may run at once.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, status
from fastapi.responses import JSONResponse

from thermochat.api.dependencies import CoreDep, SettingsDep
from thermochat.models.schemas import TickResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_cron_secret(expected: str, authorization: str | None) -> None:
    if not expected:
        return
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {expected}"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid cron secret",
        )


@router.api_route(
    "/tick",
    methods=["GET", "POST"],
    response_model=TickResponse,
    responses={503: {"model": TickResponse}},
)
async def run_tick(
    core: CoreDep,
    settings: SettingsDep,
    authorization: Annotated[str | None, Header()] = None,
) -> TickResponse | JSONResponse:
    """Apply every scheduled change that is due now."""
    _check_cron_secret(settings.cron_secret, authorization)

    result = await core.runner.tick()
    body = TickResponse(**result.as_dict())
    if not result.ok:
        logger.error("Externally triggered tick failed: %s", result.error)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(mode="json"),
        )
    return body
