"""Reply policies used by the demo auto-responder."""

import random
from dataclasses import dataclass, field
from typing import Protocol

from ..models import ContactRole, Message

DEFAULT_REPLIES = (
    "Thanks for your message. I'll get back to you soon.",
    "I appreciate your question. Let me think about that.",
    "That's interesting. Can you tell me more?",
)

ROLE_REPLIES: dict[ContactRole, tuple[str, ...]] = {
    ContactRole.TEACHER: (
        "That's a great question! Let me explain...",
        "Let me help you understand this concept better.",
    ),
    ContactRole.TECHNICIAN: (
        "I can help you fix that. First, let's diagnose the issue.",
        "Have you tried restarting the device?",
    ),
    ContactRole.STUDENT: (
        "I've faced that problem too. Maybe we can work on it together?",
        "That's interesting! Let's talk more about it.",
    ),
}


@dataclass
class ReplyContext:
    """What a reply policy knows about the conversation."""

    conversation_id: str
    responder_id: str
    responder_role: ContactRole | None
    history: list[Message] = field(default_factory=list)

    @property
    def last_text(self) -> str:
        return self.history[-1].text if self.history else ""


class IReplyPolicy(Protocol):
    """Produces the text of an automatic reply."""

    async def generate_reply(self, context: ReplyContext) -> str:
        ...


class CannedReplyPolicy:
    """Picks a reply from a role-keyed list."""

    def __init__(
        self,
        replies: dict[ContactRole, tuple[str, ...]] | None = None,
        default: tuple[str, ...] = DEFAULT_REPLIES,
        rng: random.Random | None = None,
    ):
        self._replies = ROLE_REPLIES if replies is None else replies
        self._default = default
        self._rng = rng or random.Random()

    async def generate_reply(self, context: ReplyContext) -> str:
        options = self._replies.get(context.responder_role) or self._default
        return self._rng.choice(options)
