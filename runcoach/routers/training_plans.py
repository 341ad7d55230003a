"""API endpoints for onboarding, training plan access and plan changes."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import ValidationError

from runcoach.models.plan import TrainingPlan, UserProfile, WorkoutUpdate
from runcoach.models.schemas import AdjustmentRequest
from runcoach.services.errors import GenerationError, MalformedPlanData, PlanRequestInProgress
from runcoach.services.runner_session import RunnerSession, get_runner_session


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/training", tags=["training_plans"])

SessionDep = Annotated[RunnerSession, Depends(get_runner_session)]
WeekIndex = Annotated[int, Path(ge=0, description="Zero-based week position in the plan")]


def _generation_error_response(err: GenerationError) -> HTTPException:
    """Map generation failures onto a retryable HTTP error."""

    if isinstance(err, MalformedPlanData):
        return HTTPException(
            status_code=502,
            detail="The coach returned a plan we could not read. Please try again.",
        )
    return HTTPException(
        status_code=503,
        detail="The coach service is unavailable right now. Please try again.",
    )


def _require_plan(plan: TrainingPlan | None) -> TrainingPlan:
    if plan is None:
        raise HTTPException(status_code=404, detail="No training plan found. Complete onboarding first.")
    return plan


@router.post("/onboarding", response_model=TrainingPlan, status_code=201)
async def complete_onboarding(profile: UserProfile, session: SessionDep):
    """
    Store the runner profile and generate a brand-new plan for it.

    Args:
        profile: Onboarding answers (level, goal, availability, volume)

    Returns:
        TrainingPlan: The generated plan, weeks numbered 1..N
    """
    try:
        plan = await session.onboarding_complete(profile)
        logger.info("Onboarding complete: plan=%s, weeks=%d", plan.id, len(plan.weeks))
        return plan

    except PlanRequestInProgress as err:
        raise HTTPException(status_code=409, detail=str(err))
    except GenerationError as err:
        logger.warning("Plan generation failed: %s", err)
        raise _generation_error_response(err)
    except Exception as e:
        logger.exception("Failed to generate training plan")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to generate training plan: {str(e)}"
        )


@router.get("/plan", response_model=TrainingPlan)
async def get_current_plan(session: SessionDep):
    """Return the active training plan."""
    return _require_plan(session.plan)


@router.get("/profile", response_model=UserProfile)
async def get_profile(session: SessionDep):
    """Return the stored runner profile."""
    if session.profile is None:
        raise HTTPException(status_code=404, detail="No runner profile found. Complete onboarding first.")
    return session.profile


@router.patch(
    "/weeks/{week_index}/workouts/{workout_id}",
    response_model=TrainingPlan,
)
async def update_workout(
    week_index: WeekIndex,
    workout_id: str,
    update: WorkoutUpdate,
    session: SessionDep,
):
    """
    Apply a partial update to one workout.

    Unknown week indexes or workout ids leave the plan unchanged.

    Args:
        week_index: Zero-based week position
        workout_id: Workout identifier
        update: Fields to overwrite (omitted fields are untouched)

    Returns:
        TrainingPlan: The plan after the update
    """
    _require_plan(session.plan)
    try:
        return session.update_workout(week_index, workout_id, update)
    except ValidationError as err:
        logger.warning("Rejected workout update for %s: %s", workout_id, err)
        raise HTTPException(
            status_code=422,
            detail=err.errors(include_url=False, include_context=False, include_input=False),
        )


@router.post(
    "/weeks/{week_index}/workouts/{workout_id}/toggle",
    response_model=TrainingPlan,
)
async def toggle_workout(week_index: WeekIndex, workout_id: str, session: SessionDep):
    """Flip a workout between pending and completed."""
    _require_plan(session.plan)
    return session.toggle_workout(week_index, workout_id)


@router.post("/weeks/{week_index}/adjust", response_model=TrainingPlan)
async def adjust_plan(
    week_index: WeekIndex,
    adjustment: AdjustmentRequest,
    session: SessionDep,
):
    """
    Regenerate every week after ``week_index`` from the runner's feedback.

    Weeks up to and including ``week_index`` are never changed.

    Args:
        week_index: Last week (zero-based) whose history is kept as-is
        adjustment: Runner feedback for the coach

    Returns:
        TrainingPlan: The merged plan
    """
    _require_plan(session.plan)
    try:
        plan = await session.request_adjustment(week_index, adjustment.feedback)
        logger.info("Adjusted plan %s after week index %d", plan.id, week_index)
        return plan

    except PlanRequestInProgress as err:
        raise HTTPException(status_code=409, detail=str(err))
    except GenerationError as err:
        logger.warning("Plan adjustment failed: %s", err)
        raise _generation_error_response(err)
    except Exception as e:
        logger.exception("Failed to adjust training plan")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to adjust training plan: {str(e)}"
        )


@router.delete("/session", status_code=200)
async def reset_session(session: SessionDep):
    """
    Forget the stored profile and plan so onboarding can start over.

    Returns:
        dict: Success message
    """
    try:
        session.reset()
        logger.info("Runner session reset")
        return {"message": "Profile and training plan cleared"}

    except PlanRequestInProgress as err:
        raise HTTPException(status_code=409, detail=str(err))
    except Exception as e:
        logger.exception("Failed to reset runner session")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to reset session: {str(e)}"
        )
