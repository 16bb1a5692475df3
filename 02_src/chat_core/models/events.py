"""Change events published to the UI layer."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Topic(str, Enum):
    """EventBus topics, one per re-render concern."""

    MESSAGES = "messages"
    TYPING = "typing"
    CALLS = "calls"
    CONTACTS = "contacts"


@dataclass
class ChangeEvent:
    """A state change exchanged through EventBus."""

    id: str
    topic: Topic
    payload: dict  # varies by topic
    source: str  # component that published
    timestamp: datetime
