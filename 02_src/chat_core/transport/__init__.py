"""External collaborator contracts and in-memory implementations."""

from .interfaces import (
    FileUpload,
    IAttachmentStorage,
    ICallSignaling,
    IConversationTransport,
    IncomingHandler,
    IRoster,
    MessageAck,
    SignalHandler,
    StatusHandler,
    StoredFile,
    TypingHandler,
    Unsubscribe,
)
from .memory import (
    InMemoryAttachmentStorage,
    InMemoryRoster,
    LoopbackHub,
    LoopbackTransport,
    ManualSignaling,
)

__all__ = [
    "FileUpload",
    "IAttachmentStorage",
    "ICallSignaling",
    "IConversationTransport",
    "IRoster",
    "IncomingHandler",
    "MessageAck",
    "SignalHandler",
    "StatusHandler",
    "StoredFile",
    "TypingHandler",
    "Unsubscribe",
    "InMemoryAttachmentStorage",
    "InMemoryRoster",
    "LoopbackHub",
    "LoopbackTransport",
    "ManualSignaling",
]
