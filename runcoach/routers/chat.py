"""API endpoints for the conversational coach."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from runcoach.models.schemas import ChatMessageRequest, ChatReplyResponse, ChatStateResponse
from runcoach.services.runner_session import RunnerSession, get_runner_session


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

SessionDep = Annotated[RunnerSession, Depends(get_runner_session)]


def _chat_state(session: RunnerSession) -> ChatStateResponse:
    return ChatStateResponse(is_open=session.chat_open, history=session.chat_history)


@router.get("", response_model=ChatStateResponse)
async def get_chat(session: SessionDep):
    """Return the chat panel state and full history (greeting first)."""
    return _chat_state(session)


@router.post("/open", response_model=ChatStateResponse)
async def open_chat(session: SessionDep):
    session.open_chat()
    return _chat_state(session)


@router.post("/close", response_model=ChatStateResponse)
async def close_chat(session: SessionDep):
    session.close_chat()
    return _chat_state(session)


@router.post("/messages", response_model=ChatReplyResponse)
async def send_message(message: ChatMessageRequest, session: SessionDep):
    """
    Send a message to the coach.

    A failed reply is not an error: the history gains an apology instead,
    and the runner's message is kept.

    Returns:
        ChatReplyResponse: The reply (None for a blank message) and history
    """
    reply = await session.send_chat_message(message.text)
    logger.info("Coach chat turn handled | replied=%s", reply is not None)
    return ChatReplyResponse(
        is_open=session.chat_open,
        history=session.chat_history,
        reply=reply,
    )
