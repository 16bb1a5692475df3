"""Messaging core: message delivery, typing, calls and chat sessions."""

from .app import Application, IApplication
from .attachments import AttachmentConstraints, AttachmentManager, StagingResult
from .calls import CallSessionManager
from .conversation import ConversationService
from .delivery import DeliveryStateMachine
from .directory import ChatSessionDirectory
from .errors import (
    AttachmentRejected,
    CallAlreadyActive,
    CallEnded,
    InvalidTransition,
    MessagingError,
    RejectionReason,
    SendFailed,
)
from .event_bus import EventBus, IEventBus
from .models import (
    Attachment,
    AttachmentType,
    Call,
    CallStatus,
    CallType,
    ChangeEvent,
    ChatSession,
    Contact,
    ContactRole,
    Message,
    MessageStatus,
    SignalEvent,
    Topic,
    TraceEvent,
)
from .store import MessageStore
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .typing_signal import TypingChannel

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Attachment",
    "AttachmentType",
    "Call",
    "CallStatus",
    "CallType",
    "ChangeEvent",
    "ChatSession",
    "Contact",
    "ContactRole",
    "Message",
    "MessageStatus",
    "SignalEvent",
    "Topic",
    "TraceEvent",
    # Errors
    "MessagingError",
    "AttachmentRejected",
    "RejectionReason",
    "InvalidTransition",
    "CallAlreadyActive",
    "CallEnded",
    "SendFailed",
    # Components
    "AttachmentConstraints",
    "AttachmentManager",
    "StagingResult",
    "CallSessionManager",
    "ChatSessionDirectory",
    "ConversationService",
    "DeliveryStateMachine",
    "EventBus",
    "IEventBus",
    "MessageStore",
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "TypingChannel",
]
