"""Conversation history behaviour of the coach chat."""
from __future__ import annotations

import pytest

from conftest import FakeGenerationClient
from runcoach.models.plan import ChatRole
from runcoach.services.coach_chat import APOLOGY_TEXT, GREETING_TEXT, CoachChatSession
from runcoach.services.errors import GenerationUnavailable, MalformedPlanData


def test_history_starts_with_greeting():
    chat = CoachChatSession(FakeGenerationClient())

    assert [(m.role, m.text) for m in chat.history] == [(ChatRole.COACH, GREETING_TEXT)]


@pytest.mark.asyncio
async def test_reply_is_appended_after_user_message():
    client = FakeGenerationClient(chat_reply="Slow down on easy days.")
    chat = CoachChatSession(client)

    reply = await chat.send_message("Why am I always tired?")

    assert reply == "Slow down on easy days."
    assert [(m.role, m.text) for m in chat.history] == [
        (ChatRole.COACH, GREETING_TEXT),
        (ChatRole.USER, "Why am I always tired?"),
        (ChatRole.COACH, "Slow down on easy days."),
    ]
    _, sent_history, sent_message = client.calls[0]
    assert [m.text for m in sent_history] == [GREETING_TEXT]
    assert sent_message == "Why am I always tired?"


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [GenerationUnavailable("offline"), MalformedPlanData("odd")])
async def test_failed_reply_appends_apology(error):
    client = FakeGenerationClient()
    client.error = error
    chat = CoachChatSession(client)

    reply = await chat.send_message("Can I run with a cold?")

    assert reply == APOLOGY_TEXT
    assert [(m.role, m.text) for m in chat.history] == [
        (ChatRole.COACH, GREETING_TEXT),
        (ChatRole.USER, "Can I run with a cold?"),
        (ChatRole.COACH, APOLOGY_TEXT),
    ]


@pytest.mark.asyncio
async def test_full_prior_history_is_sent_each_turn():
    client = FakeGenerationClient(chat_reply="Sure.")
    chat = CoachChatSession(client)

    await chat.send_message("First question")
    await chat.send_message("Second question")

    _, sent_history, _ = client.calls[1]
    assert [m.text for m in sent_history] == [GREETING_TEXT, "First question", "Sure."]


@pytest.mark.asyncio
async def test_blank_message_is_ignored():
    client = FakeGenerationClient()
    chat = CoachChatSession(client)

    assert await chat.send_message("   ") is None
    assert len(chat.history) == 1
    assert client.calls == []


def test_history_is_a_copy():
    chat = CoachChatSession(FakeGenerationClient())
    chat.history.clear()
    assert len(chat.history) == 1


@pytest.mark.asyncio
async def test_unexpected_client_error_still_appends_apology():
    client = FakeGenerationClient()
    client.error = RuntimeError("socket closed")
    chat = CoachChatSession(client)

    reply = await chat.send_message("Is a 5K a week too much?")

    assert reply == APOLOGY_TEXT
    assert [m.text for m in chat.history][-2:] == ["Is a 5K a week too much?", APOLOGY_TEXT]
