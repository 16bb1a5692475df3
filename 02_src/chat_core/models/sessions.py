"""Contact and chat session data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .messages import Message


class ContactRole(str, Enum):
    """Marketplace role of a contact."""

    STUDENT = "student"
    TEACHER = "teacher"
    TECHNICIAN = "technician"


@dataclass
class Contact:
    """Someone the current user can chat with."""

    id: str
    name: str
    role: ContactRole
    last_message: str | None = None  # preview text
    avatar: str | None = None
    unread: int = 0
    is_online: bool = False


@dataclass
class ChatSession:
    """A two-participant conversation thread."""

    id: str
    participants: frozenset[str]
    created_at: datetime
    updated_at: datetime
    last_message: Message | None = None
    unread_count: int = 0

    def __post_init__(self) -> None:
        self.participants = frozenset(self.participants)
        if len(self.participants) != 2:
            raise ValueError("ChatSession requires exactly two distinct participants")
        if self.unread_count < 0:
            raise ValueError("unread_count must be non-negative")

    def other_participant(self, user_id: str) -> str:
        """Return the participant that is not ``user_id``."""
        (other,) = self.participants - {user_id}
        return other


def conversation_id_for(a: str, b: str) -> str:
    """Stable conversation id for a participant pair, same from either side."""
    first, second = sorted((a, b))
    return f"conv:{first}:{second}"
