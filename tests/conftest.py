"""Pytest configuration for global fixtures and logging setup."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Sequence

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["ANTHROPIC_API_KEY"] = os.environ.get("ANTHROPIC_API_KEY") or "test-anthropic-key"
# Never touch a developer's real state database from the test suite.
os.environ["DATABASE_URL"] = "sqlite://"

from runcoach.logging_config import configure_logging

configure_logging()

from runcoach.database import Base
from runcoach.main import app
from runcoach.models import database_models  # noqa: F401  # Register tables on Base.metadata.
from runcoach.models.plan import (
    AdjustmentSkeleton,
    ChatMessage,
    GoalType,
    PlanSkeleton,
    RunnerLevel,
    TrainingPlan,
    UserProfile,
    WeekSkeleton,
)
from runcoach.services.coach_chat import CoachChatSession
from runcoach.services.generation_client import GenerationClient
from runcoach.services.plan_merge import hydrate_plan, parse_skeleton
from runcoach.services.plan_store import PlanStore
from runcoach.services.runner_session import RunnerSession, get_runner_session
from runcoach.services.training_planner import TrainingPlanner

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _load_fixture(name: str) -> Dict[str, Any]:
    with (FIXTURES_DIR / name).open("r", encoding="utf-8") as fh:
        return json.load(fh)


class FakeGenerationClient(GenerationClient):
    """Deterministic stand-in for the generation service."""

    def __init__(
        self,
        plan_payload: Dict[str, Any] | None = None,
        adjustment_payload: Dict[str, Any] | None = None,
        chat_reply: str = "Keep your easy runs truly easy.",
    ) -> None:
        self.plan_payload = plan_payload
        self.adjustment_payload = adjustment_payload
        self.chat_reply = chat_reply
        self.error: Exception | None = None
        self.calls: list[tuple] = []

    async def generate(self, profile: UserProfile) -> PlanSkeleton:
        self.calls.append(("generate", profile))
        if self.error:
            raise self.error
        return parse_skeleton(PlanSkeleton, self.plan_payload)

    async def adjust(self, plan: TrainingPlan, feedback: str, from_index: int) -> list[WeekSkeleton]:
        self.calls.append(("adjust", plan, feedback, from_index))
        if self.error:
            raise self.error
        return parse_skeleton(AdjustmentSkeleton, self.adjustment_payload).weeks

    async def chat(self, history: Sequence[ChatMessage], message: str) -> str:
        self.calls.append(("chat", list(history), message))
        if self.error:
            raise self.error
        return self.chat_reply


@pytest.fixture()
def plan_payload() -> Dict[str, Any]:
    """Return a four-week generated plan payload."""

    return _load_fixture("generated_plan.json")


@pytest.fixture()
def adjustment_payload() -> Dict[str, Any]:
    """Return a one-week adjustment payload."""

    return _load_fixture("adjustment_response.json")


@pytest.fixture()
def profile() -> UserProfile:
    return UserProfile(
        name="Ana",
        age=34,
        level=RunnerLevel.INTERMEDIATE,
        goal=GoalType.TEN_K,
        days_per_week=3,
        current_weekly_distance=20,
        notes="Occasional calf tightness",
    )


@pytest.fixture()
def plan(plan_payload: Dict[str, Any]) -> TrainingPlan:
    """Return a hydrated four-week plan."""

    return hydrate_plan(parse_skeleton(PlanSkeleton, plan_payload), fallback_goal="10K")


@pytest.fixture()
def fake_client(plan_payload: Dict[str, Any], adjustment_payload: Dict[str, Any]) -> FakeGenerationClient:
    return FakeGenerationClient(plan_payload=plan_payload, adjustment_payload=adjustment_payload)


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker[Session]]:
    """Provide an isolated in-memory database shared across threads."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture()
def plan_store(session_factory: sessionmaker[Session]) -> PlanStore:
    return PlanStore(session_factory)


@pytest.fixture()
def make_session(
    fake_client: FakeGenerationClient,
    plan_store: PlanStore,
) -> Callable[..., RunnerSession]:
    """Build a RunnerSession wired to the fake client and in-memory store."""

    def _make(client: GenerationClient | None = None) -> RunnerSession:
        client = client or fake_client
        return RunnerSession(
            planner=TrainingPlanner(client),
            store=plan_store,
            chat=CoachChatSession(client),
        )

    return _make


@pytest.fixture()
def test_client(make_session: Callable[..., RunnerSession]) -> Iterator[TestClient]:
    """Provide a FastAPI test client bound to a fresh runner session."""

    runner_session = make_session()
    app.dependency_overrides[get_runner_session] = lambda: runner_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_runner_session, None)
