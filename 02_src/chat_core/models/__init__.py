"""Core data models for the messaging core."""

from .calls import Call, CallStatus, CallType, SignalEvent, format_duration
from .events import ChangeEvent, Topic
from .messages import Attachment, AttachmentType, Message, MessageStatus
from .sessions import ChatSession, Contact, ContactRole, conversation_id_for
from .tracing import TraceEvent

__all__ = [
    # Messages
    "Message",
    "MessageStatus",
    "Attachment",
    "AttachmentType",
    # Sessions
    "ChatSession",
    "Contact",
    "ContactRole",
    "conversation_id_for",
    # Calls
    "Call",
    "CallStatus",
    "CallType",
    "SignalEvent",
    "format_duration",
    # Events
    "ChangeEvent",
    "Topic",
    # Tracing
    "TraceEvent",
]
