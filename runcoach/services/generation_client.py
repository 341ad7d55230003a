"""Generation service boundary: plan generation, adjustment and coach chat."""
from __future__ import annotations

import abc
import json
import logging
from pathlib import Path
from typing import Any, Sequence

import yaml
from anthropic import APIError, AsyncAnthropic

from runcoach.config import get_settings
from runcoach.models.plan import (
    AdjustmentSkeleton,
    ChatMessage,
    ChatRole,
    PlanSkeleton,
    TrainingPlan,
    UserProfile,
    WeekPlan,
    WeekSkeleton,
    WorkoutType,
)
from runcoach.services.errors import (
    EmptyGenerationResult,
    GenerationUnavailable,
    MalformedPlanData,
)
from runcoach.services.plan_merge import parse_skeleton


logger = logging.getLogger(__name__)

_ANTHROPIC_ROLES = {ChatRole.USER: "user", ChatRole.COACH: "assistant"}


class GenerationClient(abc.ABC):
    """Contract the engine expects from a plan generation backend.

    Implementations raise ``GenerationUnavailable`` when the service cannot
    answer, ``EmptyGenerationResult`` when it answers with nothing usable and
    ``MalformedPlanData`` when the answer does not fit the expected shape.
    """

    @abc.abstractmethod
    async def generate(self, profile: UserProfile) -> PlanSkeleton:
        """Return a full plan skeleton for ``profile``."""

    @abc.abstractmethod
    async def adjust(
        self,
        plan: TrainingPlan,
        feedback: str,
        from_index: int,
    ) -> list[WeekSkeleton]:
        """Return replacement skeletons for the weeks after ``from_index``."""

    @abc.abstractmethod
    async def chat(self, history: Sequence[ChatMessage], message: str) -> str:
        """Return the coach's reply to ``message`` given the prior ``history``."""


class AnthropicGenerationClient(GenerationClient):
    """Generation backend driven by Claude through the Anthropic SDK."""

    def __init__(self) -> None:
        settings = get_settings()
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.model = settings.anthropic_model
        self.max_tokens = settings.generation_max_tokens
        self.temperature = settings.generation_temperature
        self.plan_weeks = settings.plan_weeks
        self.prompts = self._load_prompt_config(settings.prompt_config_path)

    async def generate(self, profile: UserProfile) -> PlanSkeleton:
        section = self.prompts["plan_generation"]
        prompt = section["template"].format(
            weeks=self.plan_weeks,
            name=profile.name,
            age=profile.age,
            level=profile.level.value,
            goal=profile.goal.value,
            days_per_week=profile.days_per_week,
            current_weekly_distance=profile.current_weekly_distance,
            notes=profile.notes or "None",
            response_format=self._response_format(),
        )

        logger.info(
            "Requesting %d-week plan | goal=%s level=%s",
            self.plan_weeks,
            profile.goal.value,
            profile.level.value,
        )
        text = await self._create_message(
            {
                "model": self.model,
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
                "system": section["system"],
                "messages": [{"role": "user", "content": prompt}],
            },
            label="plan generation",
        )
        return parse_skeleton(PlanSkeleton, self._parse_response(text))

    async def adjust(
        self,
        plan: TrainingPlan,
        feedback: str,
        from_index: int,
    ) -> list[WeekSkeleton]:
        section = self.prompts["plan_adjustment"]
        frozen = plan.weeks[: from_index + 1]
        remaining = plan.weeks[from_index + 1 :]
        prompt = section["template"].format(
            goal=plan.goal,
            feedback=feedback,
            frozen_weeks=self._weeks_for_prompt(frozen),
            remaining_weeks=self._weeks_for_prompt(remaining),
            remaining=len(remaining),
            first_week=from_index + 2,
            response_format=self._response_format(),
        )

        logger.info(
            "Requesting adjustment for plan %s after week index %d (%d week(s) open)",
            plan.id,
            from_index,
            len(remaining),
        )
        text = await self._create_message(
            {
                "model": self.model,
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
                "system": section["system"],
                "messages": [{"role": "user", "content": prompt}],
            },
            label="plan adjustment",
        )
        payload = self._parse_response(text, list_key="weeks")
        return parse_skeleton(AdjustmentSkeleton, payload).weeks

    async def chat(self, history: Sequence[ChatMessage], message: str) -> str:
        section = self.prompts["chat"]
        system_prompt, messages = self._build_chat_messages(section["system"], history, message)
        return await self._create_message(
            {
                "model": self.model,
                "max_tokens": section.get("max_tokens", 1024),
                "temperature": self.temperature,
                "system": system_prompt,
                "messages": messages,
            },
            label="coach chat",
        )

    async def _create_message(self, request_payload: dict[str, Any], label: str) -> str:
        try:
            response = await self.client.messages.create(**request_payload)
        except APIError as err:
            logger.exception("Claude %s request failed", label)
            raise GenerationUnavailable(f"Generation service failed during {label}") from err

        text = "".join(getattr(block, "text", "") for block in response.content or [])
        if not text.strip():
            logger.warning("Claude returned an empty response for %s", label)
            raise EmptyGenerationResult(f"Generation service returned no content for {label}")
        return text

    @staticmethod
    def _build_chat_messages(
        system_prompt: str,
        history: Sequence[ChatMessage],
        message: str,
    ) -> tuple[str, list[dict[str, str]]]:
        """Map chat history onto an alternating user/assistant conversation.

        The conversation must open with a user turn, so leading coach turns
        (the greeting) are folded into the system prompt. Consecutive turns
        from the same role are joined.
        """

        turns = list(history)
        opening = []
        while turns and turns[0].role is ChatRole.COACH:
            opening.append(turns.pop(0).text)
        if opening:
            system_prompt = (
                f"{system_prompt}\n\nYou opened this conversation with:\n" + "\n".join(opening)
            )

        messages: list[dict[str, str]] = []
        entries = [(_ANTHROPIC_ROLES[turn.role], turn.text) for turn in turns]
        entries.append(("user", message))
        for role, text in entries:
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"] = f"{messages[-1]['content']}\n\n{text}"
            else:
                messages.append({"role": role, "content": text})
        return system_prompt, messages

    def _response_format(self) -> str:
        workout_types = ", ".join(workout_type.value for workout_type in WorkoutType)
        return self.prompts["response_format"].format(workout_types=workout_types)

    @staticmethod
    def _weeks_for_prompt(weeks: Sequence[WeekPlan]) -> str:
        if not weeks:
            return "(none)"
        summary = [
            week.model_dump(
                mode="json",
                exclude={"workouts": {"__all__": {"id"}}},
            )
            for week in weeks
        ]
        return json.dumps(summary, indent=2, ensure_ascii=False)

    @staticmethod
    def _load_prompt_config(path: Path) -> dict[str, Any]:
        with Path(path).open("r", encoding="utf-8") as fh:
            return yaml.safe_load(fh)

    @staticmethod
    def _parse_response(response_text: str, list_key: str | None = None) -> dict[str, Any]:
        """Extract the JSON object from Claude's reply.

        With ``list_key`` set, a bare top-level array is also accepted and
        returned as ``{list_key: [...]}``.
        """

        opening, closing = "{", "}"
        if list_key is not None:
            array_start = response_text.find("[")
            object_start = response_text.find("{")
            if array_start >= 0 and (object_start < 0 or array_start < object_start):
                opening, closing = "[", "]"

        start = response_text.find(opening)
        end = response_text.rfind(closing) + 1
        if start < 0 or end <= start:
            raise MalformedPlanData("Generation service reply did not contain a JSON object")

        try:
            result = json.loads(response_text[start:end])
        except json.JSONDecodeError as err:
            raise MalformedPlanData(f"Generation service reply is not valid JSON: {err}") from err

        if isinstance(result, list) and list_key is not None:
            result = {list_key: result}
        if not isinstance(result, dict):
            raise MalformedPlanData("Generation service reply is not a JSON object")
        return result
