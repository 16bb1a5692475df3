"""Boundary contracts of the messaging core.

The backend, the attachment store, call signaling and the roster all live
outside this package. Only their shapes are defined here.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Protocol

from ..models import Call, Contact, Message, MessageStatus, SignalEvent

IncomingHandler = Callable[[Message], Awaitable[None]]
StatusHandler = Callable[[str, MessageStatus], Awaitable[None]]  # message_id, status
TypingHandler = Callable[[str, bool], Awaitable[None]]  # conversation_id, is_typing
SignalHandler = Callable[[str, SignalEvent], Awaitable[None]]  # call_id, event
Unsubscribe = Callable[[], None]


@dataclass
class MessageAck:
    """Backend receipt for an outgoing message."""

    message_id: str
    received_at: datetime


@dataclass
class FileUpload:
    """A file chosen by the user, before validation."""

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class StoredFile:
    """Result of persisting a file in attachment storage."""

    id: str
    url: str


class IConversationTransport(Protocol):
    """Network channel to the conversation backend."""

    async def send_message(self, conversation_id: str, message: Message) -> MessageAck:
        """Send a message; returns once the backend acknowledged it.

        Raises SendFailed (or any transport error) when it does not.
        """
        ...

    def subscribe_incoming(
        self, conversation_id: str, handler: IncomingHandler
    ) -> Unsubscribe:
        """Receive messages sent by the remote participant."""
        ...

    def subscribe_status_updates(
        self, message_id: str, handler: StatusHandler
    ) -> Unsubscribe:
        """Receive delivery/read receipts for one outgoing message."""
        ...

    async def mark_read(self, conversation_id: str, message_ids: list[str]) -> None:
        """Tell the remote participant their messages were read."""
        ...

    async def send_typing(self, conversation_id: str, is_typing: bool) -> None:
        """Best-effort typing signal to the remote participant."""
        ...

    def subscribe_typing(
        self, conversation_id: str, handler: TypingHandler
    ) -> Unsubscribe:
        """Receive the remote participant's typing signals."""
        ...


class IAttachmentStorage(Protocol):
    """Persists attachments beyond the local session."""

    async def upload(self, file: FileUpload) -> StoredFile:
        ...


class ICallSignaling(Protocol):
    """Opaque source of call signaling events."""

    async def place_call(self, call: Call) -> None:
        """Start signaling an outbound call."""
        ...

    async def hang_up(self, call: Call) -> None:
        """Tell the remote side the call is over."""
        ...

    def subscribe(self, handler: SignalHandler) -> Unsubscribe:
        """Receive ringing / accepted / ended_by_remote events."""
        ...


class IRoster(Protocol):
    """Directory of people a user already knows."""

    async def list_known_contacts(self, user_id: str) -> list[Contact]:
        ...
