"""Unit tests for TrainingPlanner against a deterministic generation client."""
from __future__ import annotations

import pytest

from conftest import FakeGenerationClient
from runcoach.models.plan import TrainingPlan, UserProfile
from runcoach.services.errors import EmptyGenerationResult, GenerationUnavailable, MalformedPlanData
from runcoach.services.training_planner import TrainingPlanner


@pytest.mark.asyncio
async def test_request_full_plan_returns_numbered_hydrated_plan(fake_client, profile: UserProfile):
    fake_client.plan_payload["weeks"][2]["week_number"] = 7

    plan = await TrainingPlanner(fake_client).request_full_plan(profile)

    assert [week.week_number for week in plan.weeks] == [1, 2, 3, 4]
    assert all(not workout.completed for week in plan.weeks for workout in week.workouts)
    assert fake_client.calls[0] == ("generate", profile)


@pytest.mark.asyncio
async def test_request_full_plan_with_no_weeks_is_empty_result(fake_client, profile: UserProfile):
    fake_client.plan_payload = {"goal_summary": "Nothing", "weeks": []}

    with pytest.raises(EmptyGenerationResult):
        await TrainingPlanner(fake_client).request_full_plan(profile)


@pytest.mark.asyncio
async def test_request_full_plan_propagates_malformed_data(fake_client, profile: UserProfile):
    fake_client.plan_payload = {"goal_summary": "Broken", "weeks": [{"focus": "No workouts key"}]}

    with pytest.raises(MalformedPlanData):
        await TrainingPlanner(fake_client).request_full_plan(profile)


@pytest.mark.asyncio
async def test_empty_result_is_treated_as_unavailable(fake_client, profile: UserProfile):
    fake_client.error = EmptyGenerationResult("blank")

    with pytest.raises(GenerationUnavailable):
        await TrainingPlanner(fake_client).request_full_plan(profile)


@pytest.mark.asyncio
async def test_request_adjustment_merges_after_index(fake_client, plan: TrainingPlan):
    adjusted = await TrainingPlanner(fake_client).request_adjustment(plan, "Calf is tight", 1)

    assert [week.week_number for week in adjusted.weeks] == [1, 2, 3, 4]
    assert adjusted.weeks[:2] == plan.weeks[:2]
    assert adjusted.weeks[2].focus == "Reduced load after calf tightness"
    assert adjusted.weeks[3] == plan.weeks[3]
    assert fake_client.calls == [("adjust", plan, "Calf is tight", 1)]


@pytest.mark.asyncio
async def test_request_adjustment_on_last_week_skips_the_service(fake_client, plan: TrainingPlan):
    adjusted = await TrainingPlanner(fake_client).request_adjustment(plan, "Too easy", 3)

    assert adjusted is plan
    assert fake_client.calls == []


@pytest.mark.asyncio
async def test_request_adjustment_with_no_weeks_is_empty_result(plan: TrainingPlan):
    client = FakeGenerationClient(adjustment_payload={"weeks": []})

    with pytest.raises(EmptyGenerationResult):
        await TrainingPlanner(client).request_adjustment(plan, "Too easy", 0)
