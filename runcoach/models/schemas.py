"""Pydantic models describing API payloads."""
from pydantic import BaseModel, Field

from runcoach.models.plan import ChatMessage


class AdjustmentRequest(BaseModel):
    """Free-text feedback driving a re-plan of the remaining weeks."""

    feedback: str = Field(min_length=1, max_length=2000)


class ChatMessageRequest(BaseModel):
    text: str = Field(max_length=4000)


class ChatStateResponse(BaseModel):
    """Chat panel state for the presentation layer."""

    is_open: bool
    history: list[ChatMessage]


class ChatReplyResponse(ChatStateResponse):
    reply: str | None = None


class SessionStatusResponse(BaseModel):
    status: str
    has_profile: bool
    has_plan: bool
    plan_weeks: int = 0
