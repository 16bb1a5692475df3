"""MessageStore implementation."""

from typing import Protocol

from ..delivery import DeliveryStateMachine
from ..errors import MessageNotFound
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import Message, MessageStatus, Topic
from ..models.serialization import message_to_dict

logger = get_logger(__name__)


class IMessageStore(Protocol):
    """Ordered per-conversation message sequences with delivery status."""

    async def append(self, message: Message) -> Message:
        """Optimistically add a local message at the tail, status ``sending``."""
        ...

    async def update_status(self, message_id: str, new_status: MessageStatus) -> Message:
        """Apply a delivery transition or raise InvalidTransition."""
        ...

    async def receive_incoming(self, message: Message) -> Message:
        """Add a remote message at the tail, status ``delivered``."""
        ...

    def get_messages(self, conversation_id: str) -> list[Message]:
        """Messages of a conversation in append order."""
        ...


class MessageStore:
    """In-memory message store.

    State is mutated synchronously before the change event is awaited, so
    subscribers never observe a half-applied update.
    """

    def __init__(
        self,
        event_bus: IEventBus,
        state_machine: DeliveryStateMachine | None = None,
    ):
        self._event_bus = event_bus
        self._machine = state_machine or DeliveryStateMachine()
        self._conversations: dict[str, list[Message]] = {}
        self._by_id: dict[str, Message] = {}

    async def append(self, message: Message) -> Message:
        """Optimistically add a local message at the tail, status ``sending``.

        Raises ValueError for an id already stored; the stored message is
        left untouched.
        """
        if message.id in self._by_id:
            raise ValueError(f"Message {message.id} already stored")
        message.status = MessageStatus.SENDING
        self._insert(message)
        await self._changed("appended", message)
        return message

    async def receive_incoming(self, message: Message) -> Message:
        """Add a remote message at the tail, status ``delivered``."""
        if message.id in self._by_id:
            logger.debug(
                "Duplicate incoming message ignored",
                extra={"message_id": message.id},
            )
            return self._by_id[message.id]

        message.status = MessageStatus.DELIVERED
        self._insert(message)
        await self._changed("received", message)
        return message

    async def update_status(self, message_id: str, new_status: MessageStatus) -> Message:
        """Apply a delivery transition or raise InvalidTransition."""
        message = self.get_message(message_id)
        message.status = self._machine.transition(message.status, new_status)
        await self._changed("status", message)
        return message

    async def mark_read(self, conversation_id: str, reader_id: str) -> list[Message]:
        """Mark every delivered message addressed to ``reader_id`` as read."""
        changed = []
        for message in self._conversations.get(conversation_id, []):
            if (
                message.recipient == reader_id
                and message.status is MessageStatus.DELIVERED
            ):
                message.status = self._machine.transition(
                    message.status, MessageStatus.READ
                )
                changed.append(message)

        for message in changed:
            await self._changed("status", message)
        return changed

    async def fail_pending(self) -> list[Message]:
        """Move every message still ``sending`` to ``failed``."""
        pending = self.pending()
        for message in pending:
            message.status = MessageStatus.FAILED
        for message in pending:
            await self._changed("status", message)
        if pending:
            logger.info("Marked %s unacknowledged messages as failed", len(pending))
        return pending

    def contains(self, message_id: str) -> bool:
        return message_id in self._by_id

    def get_message(self, message_id: str) -> Message:
        try:
            return self._by_id[message_id]
        except KeyError:
            raise MessageNotFound(message_id) from None

    def get_messages(self, conversation_id: str) -> list[Message]:
        """Messages of a conversation in append order."""
        return list(self._conversations.get(conversation_id, []))

    def pending(self, conversation_id: str | None = None) -> list[Message]:
        """Messages still waiting for a backend acknowledgment."""
        if conversation_id is None:
            source = self._by_id.values()
        else:
            source = self._conversations.get(conversation_id, [])
        return [m for m in source if m.status is MessageStatus.SENDING]

    def clear(self) -> None:
        self._conversations.clear()
        self._by_id.clear()

    def _insert(self, message: Message) -> None:
        if message.id in self._by_id:
            raise ValueError(f"Message {message.id} already stored")
        self._conversations.setdefault(message.conversation_id, []).append(message)
        self._by_id[message.id] = message

    async def _changed(self, change: str, message: Message) -> None:
        await self._event_bus.emit(
            Topic.MESSAGES,
            {
                "change": change,
                "conversation_id": message.conversation_id,
                "message": message_to_dict(message),
            },
            source="message_store",
        )
