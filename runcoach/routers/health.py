"""Router exposing basic system endpoints."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from runcoach.models.schemas import SessionStatusResponse
from runcoach.services.runner_session import RunnerSession, get_runner_session


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/status", response_model=SessionStatusResponse)
async def get_status(
    session: Annotated[RunnerSession, Depends(get_runner_session)],
) -> SessionStatusResponse:
    """
    Report service liveness and whether onboarding has been completed.

    Returns:
        SessionStatusResponse: presence of profile and plan, and plan length
    """
    plan = session.plan
    return SessionStatusResponse(
        status="online",
        has_profile=session.profile is not None,
        has_plan=plan is not None,
        plan_weeks=len(plan.weeks) if plan else 0,
    )
