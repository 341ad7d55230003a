"""Turn-based conversation with the AI coach."""
from __future__ import annotations

import logging

from runcoach.models.plan import ChatMessage, ChatRole
from runcoach.services.errors import GenerationError
from runcoach.services.generation_client import GenerationClient


logger = logging.getLogger(__name__)

GREETING_TEXT = (
    "Hi, I'm your AI running coach. Any questions about your plan, "
    "or need some running advice?"
)
APOLOGY_TEXT = "Sorry, I couldn't reach the coach right now. Please try again."


class CoachChatSession:
    """Append-only chat history seeded with a fixed greeting.

    The history is independent of plan state. A failed reply never loses
    the runner's message: an apology is appended in place of the reply.
    """

    def __init__(self, client: GenerationClient) -> None:
        self.client = client
        self._history: list[ChatMessage] = [ChatMessage(role=ChatRole.COACH, text=GREETING_TEXT)]

    @property
    def history(self) -> list[ChatMessage]:
        return list(self._history)

    async def send_message(self, text: str) -> str | None:
        """Send ``text`` to the coach and return the reply appended to history.

        Blank messages are ignored and return ``None``.
        """

        if not text.strip():
            return None

        prior = list(self._history)
        self._history.append(ChatMessage(role=ChatRole.USER, text=text))

        try:
            reply = await self.client.chat(prior, text)
        except GenerationError:
            logger.warning("Coach chat reply failed; appending apology", exc_info=True)
            reply = APOLOGY_TEXT
        except Exception:
            logger.exception("Unexpected error from coach chat client; appending apology")
            reply = APOLOGY_TEXT

        self._history.append(ChatMessage(role=ChatRole.COACH, text=reply))
        return reply
