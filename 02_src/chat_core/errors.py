"""Exception hierarchy for the messaging core."""

from enum import Enum


class MessagingError(Exception):
    """Base exception for all messaging-core errors."""


class RejectionReason(str, Enum):
    INVALID_TYPE = "invalid_type"
    TOO_LARGE = "too_large"


class AttachmentRejected(MessagingError):
    """A file failed local validation and was not staged."""

    def __init__(self, file_name: str, reason: RejectionReason, detail: str = ""):
        self.file_name = file_name
        self.reason = reason
        message = f"{file_name}: {reason.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class InvalidTransition(MessagingError):
    """A status change not reachable from the current state."""

    def __init__(self, entity: str, current: Enum, requested: Enum):
        self.entity = entity
        self.current = current
        self.requested = requested
        super().__init__(
            f"{entity}: cannot move from {current.value!r} to {requested.value!r}"
        )


class CallAlreadyActive(MessagingError):
    """A conversation already has a call that has not ended."""

    def __init__(self, conversation_id: str, call_id: str):
        self.conversation_id = conversation_id
        self.call_id = call_id
        super().__init__(
            f"Conversation {conversation_id} already has active call {call_id}"
        )


class SendFailed(MessagingError):
    """The transport could not deliver a message to the backend."""

    def __init__(self, message_id: str, reason: str = ""):
        self.message_id = message_id
        self.reason = reason
        super().__init__(f"Message {message_id} not acknowledged: {reason}".rstrip(": "))


# Lookups
class MessageNotFound(MessagingError, LookupError):
    """Unknown message id."""


class SessionNotFound(MessagingError, LookupError):
    """Unknown chat session."""


class ContactNotFound(MessagingError, LookupError):
    """Unknown contact."""


class CallNotFound(MessagingError, LookupError):
    """Unknown call id."""


class CallEnded(MessagingError):
    """Media controls were used on a call that already ended."""

    def __init__(self, call_id: str):
        self.call_id = call_id
        super().__init__(f"Call {call_id} has ended")
