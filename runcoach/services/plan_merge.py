"""Hydration of generator output and splicing of plan adjustments.

Raw generator data never enters plan state: it is validated into skeletons,
then hydrated (fresh ids, ``completed=False``) into plan entities. Week
numbering is a display/ordering concern, so a full plan with bad numbering
is renumbered rather than rejected, and an adjustment keeps the week numbers
already in place.
"""
from __future__ import annotations

import logging
from typing import Any, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from runcoach.models.plan import (
    PlanSkeleton,
    TrainingPlan,
    WeekPlan,
    WeekSkeleton,
    Workout,
    WorkoutSkeleton,
    new_id,
)
from runcoach.services.errors import MalformedPlanData


logger = logging.getLogger(__name__)

SkeletonT = TypeVar("SkeletonT", bound=BaseModel)


def parse_skeleton(model: type[SkeletonT], payload: Any) -> SkeletonT:
    """Validate raw generator output, converting failures to MalformedPlanData."""

    try:
        return model.model_validate(payload)
    except ValidationError as err:
        logger.warning(
            "Generator payload failed %s validation (%d error(s))",
            model.__name__,
            err.error_count(),
        )
        raise MalformedPlanData(f"Invalid {model.__name__} payload: {err}") from err


def hydrate_workout(skeleton: WorkoutSkeleton) -> Workout:
    return Workout(id=new_id(), completed=False, **skeleton.model_dump())


def hydrate_week(skeleton: WeekSkeleton, week_number: int) -> WeekPlan:
    return WeekPlan(
        week_number=week_number,
        focus=skeleton.focus,
        workouts=[hydrate_workout(workout) for workout in skeleton.workouts],
    )


def hydrate_weeks(skeletons: Sequence[WeekSkeleton]) -> list[WeekPlan]:
    """Hydrate weeks, keeping usable service numbers and falling back to position."""

    weeks = []
    for position, skeleton in enumerate(skeletons, start=1):
        number = skeleton.week_number
        if number is None or number < 1:
            number = position
        weeks.append(hydrate_week(skeleton, number))
    return weeks


def renumber_weeks(weeks: Sequence[WeekPlan]) -> list[WeekPlan]:
    """Return weeks numbered exactly 1..N, preserving their order."""

    numbers = [week.week_number for week in weeks]
    expected = list(range(1, len(weeks) + 1))
    if numbers == expected:
        return list(weeks)

    logger.warning("Renumbering weeks %s as 1..%d", numbers, len(weeks))
    return [
        week.model_copy(update={"week_number": number})
        for week, number in zip(weeks, expected)
    ]


def hydrate_plan(skeleton: PlanSkeleton, fallback_goal: str) -> TrainingPlan:
    """Build a brand-new plan (fresh id and timestamp) from a plan skeleton."""

    weeks = renumber_weeks(hydrate_weeks(skeleton.weeks))
    goal = (skeleton.goal_summary or "").strip() or fallback_goal
    return TrainingPlan(goal=goal, weeks=weeks)


def merge_adjustment(
    plan: TrainingPlan,
    replacement_weeks: Sequence[WeekPlan],
    from_index: int,
) -> TrainingPlan:
    """Splice hydrated replacement weeks into ``plan`` after ``from_index``.

    Weeks ``0..from_index`` are reused untouched. Replacement ``k`` lands at
    position ``from_index + 1 + k`` and takes over the week number already
    there. A short replacement list leaves the trailing weeks as they were;
    surplus replacements are dropped so the plan never grows. The plan's
    id, creation time and goal are preserved.
    """

    if from_index < 0:
        raise ValueError(f"from_index must be non-negative, got {from_index}")

    first_open = from_index + 1
    remaining = len(plan.weeks) - first_open
    if remaining <= 0:
        logger.info(
            "Adjustment after week index %d leaves no weeks to replace in plan %s",
            from_index,
            plan.id,
        )
        return plan

    if len(replacement_weeks) > remaining:
        logger.warning(
            "Discarding %d surplus adjusted week(s) for plan %s",
            len(replacement_weeks) - remaining,
            plan.id,
        )

    weeks = list(plan.weeks)
    for offset, replacement in enumerate(replacement_weeks[:remaining]):
        position = first_open + offset
        weeks[position] = replacement.model_copy(
            update={"week_number": plan.weeks[position].week_number}
        )

    logger.info(
        "Merged %d adjusted week(s) into plan %s after week index %d",
        min(len(replacement_weeks), remaining),
        plan.id,
        from_index,
    )
    return plan.model_copy(update={"weeks": weeks})
