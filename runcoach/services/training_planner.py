"""Plan generation and adjustment on top of the generation service."""
from __future__ import annotations

import logging

from runcoach.models.plan import TrainingPlan, UserProfile, WeekPlan
from runcoach.services.errors import EmptyGenerationResult
from runcoach.services.generation_client import GenerationClient
from runcoach.services.plan_merge import hydrate_plan, hydrate_weeks, merge_adjustment


logger = logging.getLogger(__name__)


class TrainingPlanner:
    """Turns generation service output into validated plan state.

    Neither operation mutates anything: they return a new plan or raise,
    leaving it to the caller to install the result.
    """

    def __init__(self, client: GenerationClient) -> None:
        self.client = client

    async def request_full_plan(self, profile: UserProfile) -> TrainingPlan:
        """Generate, hydrate and number a brand-new plan for ``profile``."""

        skeleton = await self.client.generate(profile)
        if not skeleton.weeks:
            raise EmptyGenerationResult("Generated plan contains no weeks")

        plan = hydrate_plan(skeleton, fallback_goal=profile.goal.value)
        logger.info(
            "Generated plan %s | goal=%s weeks=%d",
            plan.id,
            plan.goal,
            len(plan.weeks),
        )
        return plan

    async def request_replacement_weeks(
        self,
        plan: TrainingPlan,
        feedback: str,
        from_index: int,
    ) -> list[WeekPlan]:
        """Ask the service for new weeks after ``from_index`` and hydrate them.

        Returns an empty list without calling the service when no week
        follows ``from_index``.
        """

        if from_index < 0:
            raise ValueError(f"from_index must be non-negative, got {from_index}")
        if from_index >= len(plan.weeks) - 1:
            logger.info(
                "No weeks after index %d in plan %s; skipping adjustment request",
                from_index,
                plan.id,
            )
            return []

        skeletons = await self.client.adjust(plan, feedback, from_index)
        if not skeletons:
            raise EmptyGenerationResult("Adjustment returned no weeks")
        return hydrate_weeks(skeletons)

    async def request_adjustment(
        self,
        plan: TrainingPlan,
        feedback: str,
        from_index: int,
    ) -> TrainingPlan:
        """Regenerate the weeks after ``from_index`` and merge them into ``plan``."""

        weeks = await self.request_replacement_weeks(plan, feedback, from_index)
        return merge_adjustment(plan, weeks, from_index)
