"""Session state for one runner: profile, plan and coach chat."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from runcoach.database import SessionLocal
from runcoach.models.plan import ChatMessage, TrainingPlan, UserProfile, WorkoutUpdate
from runcoach.services.coach_chat import CoachChatSession
from runcoach.services.errors import PlanRequestInProgress
from runcoach.services.generation_client import AnthropicGenerationClient
from runcoach.services.plan_merge import merge_adjustment
from runcoach.services.plan_store import PlanStore
from runcoach.services.training_planner import TrainingPlanner
from runcoach.services.workout_mutation import toggle_workout_completion, update_workout


logger = logging.getLogger(__name__)


class RunnerSession:
    """Owns the runner's profile and plan and applies every change to them.

    Each accepted transition is persisted immediately, in order. Failed
    generations or adjustments leave profile and plan exactly as they were.
    """

    def __init__(
        self,
        planner: TrainingPlanner,
        store: PlanStore,
        chat: CoachChatSession,
    ) -> None:
        self.planner = planner
        self.store = store
        self.chat = chat
        self.chat_open = False
        self._profile: UserProfile | None = None
        self._plan: TrainingPlan | None = None
        self._request_in_flight = False

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    @property
    def plan(self) -> TrainingPlan | None:
        return self._plan

    @property
    def chat_history(self) -> list[ChatMessage]:
        return self.chat.history

    def load(self) -> None:
        state = self.store.load()
        self._profile = state.profile
        self._plan = state.plan

    async def onboarding_complete(self, profile: UserProfile) -> TrainingPlan:
        """Generate a fresh plan for ``profile`` and install both."""

        with self._exclusive_request():
            plan = await self.planner.request_full_plan(profile)

        self._profile = profile
        self._plan = plan
        self._persist()
        return plan

    async def request_adjustment(self, week_index: int, feedback: str) -> TrainingPlan | None:
        """Regenerate the weeks after ``week_index`` based on ``feedback``."""

        if self._plan is None:
            logger.info("Adjustment requested without a plan; ignoring")
            return None

        with self._exclusive_request():
            weeks = await self.planner.request_replacement_weeks(self._plan, feedback, week_index)

        if not weeks:
            return self._plan

        # Merge into the current plan: workout updates may have landed while
        # the request was outstanding.
        self._plan = merge_adjustment(self._plan, weeks, week_index)
        self._persist()
        return self._plan

    def update_workout(
        self,
        week_index: int,
        workout_id: str,
        update: WorkoutUpdate,
    ) -> TrainingPlan | None:
        if self._plan is None:
            return None
        self._apply(update_workout(self._plan, week_index, workout_id, update))
        return self._plan

    def toggle_workout(self, week_index: int, workout_id: str) -> TrainingPlan | None:
        if self._plan is None:
            return None
        self._apply(toggle_workout_completion(self._plan, week_index, workout_id))
        return self._plan

    def open_chat(self) -> None:
        self.chat_open = True

    def close_chat(self) -> None:
        self.chat_open = False

    async def send_chat_message(self, text: str) -> str | None:
        return await self.chat.send_message(text)

    def reset(self) -> None:
        """Forget profile and plan so onboarding can run again."""

        if self._request_in_flight:
            raise PlanRequestInProgress("Cannot reset while a plan request is in progress")
        self.store.clear()
        self._profile = None
        self._plan = None

    def _apply(self, plan: TrainingPlan) -> None:
        if plan is self._plan:
            return
        self._plan = plan
        self._persist()

    def _persist(self) -> None:
        try:
            self.store.save(profile=self._profile, plan=self._plan)
        except SQLAlchemyError:
            # The transition stands in memory; the next successful save catches up.
            logger.warning("State change applied in memory but not persisted")

    @contextmanager
    def _exclusive_request(self) -> Iterator[None]:
        if self._request_in_flight:
            raise PlanRequestInProgress("A plan request is already in progress")
        self._request_in_flight = True
        try:
            yield
        finally:
            self._request_in_flight = False


@lru_cache()
def get_runner_session() -> RunnerSession:
    """Return the process-wide session, restored from storage on first use."""

    client = AnthropicGenerationClient()
    session = RunnerSession(
        planner=TrainingPlanner(client),
        store=PlanStore(SessionLocal),
        chat=CoachChatSession(client),
    )
    session.load()
    return session
