"""Domain models for runner profiles, training plans and coach chat.

Plan entities are frozen pydantic models: every change produces a new value,
so callers holding an older plan keep seeing exactly what they had.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


# Placeholders the generator uses when a pace target does not apply.
_PACE_PLACEHOLDERS = {"", "n/a", "na", "-", "none", "not applicable"}


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_pace(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    if stripped.lower() in _PACE_PLACEHOLDERS:
        return None
    return stripped


class RunnerLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class GoalType(str, Enum):
    FIVE_K = "5K"
    TEN_K = "10K"
    HALF_MARATHON = "Half Marathon"
    MARATHON = "Marathon"
    FITNESS = "Fitness"


class WorkoutType(str, Enum):
    """The seven workout labels the generation service may use."""

    REST = "Rest"
    EASY_RUN = "Easy Run"
    TEMPO = "Tempo"
    INTERVALS = "Intervals"
    LONG_RUN = "Long Run"
    RECOVERY = "Recovery"
    STRENGTH = "Strength"


class ChatRole(str, Enum):
    USER = "user"
    COACH = "coach"


class UserProfile(BaseModel):
    """Runner profile captured during onboarding."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    age: int = Field(gt=0)
    level: RunnerLevel
    goal: GoalType
    days_per_week: int = Field(ge=1, le=7)
    current_weekly_distance: float = Field(ge=0, description="Current weekly volume in km")
    notes: str = ""


class Workout(BaseModel):
    """A single scheduled session inside a week."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    day_name: str
    type: WorkoutType
    distance_km: float = Field(ge=0)
    duration_minutes: float = Field(ge=0)
    description: str
    pace_target: str | None = None
    completed: bool = False
    actual_distance: float | None = Field(default=None, ge=0)
    actual_duration: float | None = Field(default=None, ge=0)
    feedback: str | None = None
    feeling: int | None = Field(default=None, ge=1, le=10)

    @field_validator("pace_target")
    @classmethod
    def normalize_pace_target(cls, value: str | None) -> str | None:
        return _normalize_pace(value)


class WeekPlan(BaseModel):
    """One week of the plan. ``total_distance`` is derived, never stored."""

    model_config = ConfigDict(frozen=True)

    week_number: int = Field(ge=1)
    focus: str
    workouts: list[Workout] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_distance(self) -> float:
        return sum(workout.distance_km for workout in self.workouts)


class TrainingPlan(BaseModel):
    """A multi-week plan whose weeks are numbered exactly 1..N."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, min_length=1)
    created_at: datetime = Field(default_factory=utc_now)
    goal: str
    weeks: list[WeekPlan] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_week_sequence(self) -> "TrainingPlan":
        actual = [week.week_number for week in self.weeks]
        expected = list(range(1, len(self.weeks) + 1))
        if actual != expected:
            raise ValueError(
                f"week numbers must run 1..{len(self.weeks)} without gaps, got {actual}"
            )
        return self


class ChatMessage(BaseModel):
    """One entry in the coach conversation."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole
    text: str
    timestamp: datetime = Field(default_factory=utc_now)


# Generation service shapes (unhydrated). Unknown keys such as a
# service-supplied ``id`` or ``completed`` are ignored.
class WorkoutSkeleton(BaseModel):
    day_name: str
    type: WorkoutType
    distance_km: float = Field(ge=0)
    duration_minutes: float = Field(ge=0)
    description: str
    pace_target: str | None = None

    @field_validator("pace_target")
    @classmethod
    def normalize_pace_target(cls, value: str | None) -> str | None:
        return _normalize_pace(value)


class WeekSkeleton(BaseModel):
    week_number: int | None = None
    focus: str
    workouts: list[WorkoutSkeleton]


class PlanSkeleton(BaseModel):
    goal_summary: str | None = None
    weeks: list[WeekSkeleton]


class AdjustmentSkeleton(BaseModel):
    weeks: list[WeekSkeleton]


class WorkoutUpdate(BaseModel):
    """Partial update for a workout.

    Only fields the caller explicitly set are applied, so an omitted field
    is left alone while an explicit ``None`` clears an optional field.
    """

    model_config = ConfigDict(extra="forbid")

    day_name: str | None = None
    type: WorkoutType | None = None
    distance_km: float | None = Field(default=None, ge=0)
    duration_minutes: float | None = Field(default=None, ge=0)
    description: str | None = None
    pace_target: str | None = None
    completed: bool | None = None
    actual_distance: float | None = Field(default=None, ge=0)
    actual_duration: float | None = Field(default=None, ge=0)
    feedback: str | None = None
    feeling: int | None = Field(default=None, ge=1, le=10)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)
