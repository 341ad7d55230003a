"""Localised updates to a single workout inside a plan."""
from __future__ import annotations

import logging

from runcoach.models.plan import TrainingPlan, Workout, WorkoutUpdate


logger = logging.getLogger(__name__)


def update_workout(
    plan: TrainingPlan,
    week_index: int,
    workout_id: str,
    update: WorkoutUpdate,
) -> TrainingPlan:
    """Return a copy of ``plan`` with ``update`` applied to one workout.

    A week index or workout id that does not resolve (for example from a
    stale view) is tolerated: the original plan is returned unchanged.
    Raises ``pydantic.ValidationError`` if the result would be an invalid
    workout, such as clearing a required field.
    """

    if not 0 <= week_index < len(plan.weeks):
        logger.debug("Ignoring update for week index %d in plan %s", week_index, plan.id)
        return plan

    week = plan.weeks[week_index]
    position = next(
        (i for i, workout in enumerate(week.workouts) if workout.id == workout_id),
        None,
    )
    if position is None:
        logger.debug("Ignoring update for unknown workout %s in week %d", workout_id, week.week_number)
        return plan

    changes = update.changes()
    current = week.workouts[position]
    updated = Workout.model_validate({**current.model_dump(), **changes, "id": current.id})

    workouts = list(week.workouts)
    workouts[position] = updated
    weeks = list(plan.weeks)
    weeks[week_index] = week.model_copy(update={"workouts": workouts})

    logger.info(
        "Updated workout %s in week %d (%s)",
        workout_id,
        week.week_number,
        ", ".join(sorted(changes)) or "no fields",
    )
    return plan.model_copy(update={"weeks": weeks})


def toggle_workout_completion(plan: TrainingPlan, week_index: int, workout_id: str) -> TrainingPlan:
    """Flip the ``completed`` flag of one workout, tolerating stale references."""

    if not 0 <= week_index < len(plan.weeks):
        return plan
    workout = next((w for w in plan.weeks[week_index].workouts if w.id == workout_id), None)
    if workout is None:
        return plan
    return update_workout(plan, week_index, workout_id, WorkoutUpdate(completed=not workout.completed))
