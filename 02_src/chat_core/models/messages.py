"""Message-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class MessageStatus(str, Enum):
    """Delivery status of a message."""

    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class AttachmentType(str, Enum):
    """Kind of attachment, decides how the UI renders it."""

    IMAGE = "image"
    FILE = "file"

    @classmethod
    def for_content_type(cls, content_type: str | None) -> "AttachmentType":
        if content_type and content_type.startswith("image/"):
            return cls.IMAGE
        return cls.FILE


@dataclass
class Attachment:
    """A file bound to a message."""

    id: str
    type: AttachmentType
    url: str  # blob:<uuid> while staged, remote url once uploaded
    name: str
    size: int | None = None
    content_type: str | None = None


@dataclass
class Message:
    """A single message in a conversation."""

    id: str
    conversation_id: str
    text: str
    sender: str
    recipient: str
    timestamp: datetime
    status: MessageStatus = MessageStatus.SENDING
    attachments: list[Attachment] = field(default_factory=list)

    def has_content(self) -> bool:
        """A message needs text or at least one attachment to be sendable."""
        return bool(self.text.strip()) or bool(self.attachments)
