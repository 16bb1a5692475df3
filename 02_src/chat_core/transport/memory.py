"""In-memory collaborators for tests, demos and single-process setups."""

import asyncio
import uuid
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timezone

from ..errors import SendFailed
from ..logging_config import get_logger
from ..models import Call, Contact, Message, MessageStatus, SignalEvent
from .interfaces import (
    FileUpload,
    IncomingHandler,
    MessageAck,
    SignalHandler,
    StatusHandler,
    StoredFile,
    TypingHandler,
    Unsubscribe,
)

logger = get_logger(__name__)


def _remover(handlers: list, handler) -> Unsubscribe:
    def unsubscribe() -> None:
        if handler in handlers:
            handlers.remove(handler)

    return unsubscribe


class LoopbackHub:
    """Routes messages between participants living in the same process.

    Each participant talks to the hub through its own ``endpoint(user_id)``.
    The hub acknowledges sends immediately and, with ``auto_deliver``,
    hands the message to the recipient and reports ``delivered`` back to
    the sender on the next loop iteration.
    """

    def __init__(self, auto_deliver: bool = True):
        self.auto_deliver = auto_deliver
        self.sent: list[Message] = []
        self._endpoints: dict[str, "LoopbackTransport"] = {}
        self._fail_next = 0
        self._tasks: set[asyncio.Task] = set()

    def endpoint(self, user_id: str) -> "LoopbackTransport":
        if user_id not in self._endpoints:
            self._endpoints[user_id] = LoopbackTransport(self, user_id)
        return self._endpoints[user_id]

    def fail_next(self, count: int = 1) -> None:
        """Make the next ``count`` sends fail without acknowledgment."""
        self._fail_next += count

    async def push_status(self, message_id: str, status: MessageStatus) -> None:
        """Deliver a receipt for ``message_id`` to whoever sent it."""
        for endpoint in self._endpoints.values():
            await endpoint._notify_status(message_id, status)

    async def deliver(self, message: Message) -> None:
        """Hand ``message`` to its recipient and report it delivered."""
        recipient = self._endpoints.get(message.recipient)
        if recipient is not None:
            await recipient._notify_incoming(
                replace(message, status=MessageStatus.DELIVERED)
            )
            await self.push_status(message.id, MessageStatus.DELIVERED)

    async def drain(self) -> None:
        """Wait for scheduled deliveries to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _accept(self, message: Message) -> MessageAck:
        if self._fail_next:
            self._fail_next -= 1
            raise SendFailed(message.id, "backend rejected message")

        self.sent.append(message)
        if self.auto_deliver:
            task = asyncio.create_task(self.deliver(message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return MessageAck(message_id=message.id, received_at=datetime.now(timezone.utc))

    async def _route_typing(self, sender: str, conversation_id: str, is_typing: bool) -> None:
        for user_id, endpoint in self._endpoints.items():
            if user_id != sender:
                await endpoint._notify_typing(conversation_id, is_typing)


class LoopbackTransport:
    """One participant's view of a LoopbackHub."""

    def __init__(self, hub: LoopbackHub, user_id: str):
        self._hub = hub
        self._user_id = user_id
        self._incoming: dict[str, list[IncomingHandler]] = defaultdict(list)
        self._status: dict[str, list[StatusHandler]] = defaultdict(list)
        self._typing: dict[str, list[TypingHandler]] = defaultdict(list)
        self.read_receipts: list[str] = []
        self.typing_sent: list[tuple[str, bool]] = []

    async def send_message(self, conversation_id: str, message: Message) -> MessageAck:
        return await self._hub._accept(message)

    def subscribe_incoming(
        self, conversation_id: str, handler: IncomingHandler
    ) -> Unsubscribe:
        self._incoming[conversation_id].append(handler)
        return _remover(self._incoming[conversation_id], handler)

    def subscribe_status_updates(
        self, message_id: str, handler: StatusHandler
    ) -> Unsubscribe:
        self._status[message_id].append(handler)
        return _remover(self._status[message_id], handler)

    async def mark_read(self, conversation_id: str, message_ids: list[str]) -> None:
        self.read_receipts.extend(message_ids)
        for message_id in message_ids:
            await self._hub.push_status(message_id, MessageStatus.READ)

    async def send_typing(self, conversation_id: str, is_typing: bool) -> None:
        self.typing_sent.append((conversation_id, is_typing))
        await self._hub._route_typing(self._user_id, conversation_id, is_typing)

    def subscribe_typing(
        self, conversation_id: str, handler: TypingHandler
    ) -> Unsubscribe:
        self._typing[conversation_id].append(handler)
        return _remover(self._typing[conversation_id], handler)

    async def _notify_incoming(self, message: Message) -> None:
        for handler in list(self._incoming.get(message.conversation_id, [])):
            await handler(message)

    async def _notify_status(self, message_id: str, status: MessageStatus) -> None:
        for handler in list(self._status.get(message_id, [])):
            await handler(message_id, status)

    async def _notify_typing(self, conversation_id: str, is_typing: bool) -> None:
        for handler in list(self._typing.get(conversation_id, [])):
            await handler(conversation_id, is_typing)


class InMemoryAttachmentStorage:
    """Keeps uploaded files in a dict."""

    def __init__(self, base_url: str = "memory://attachments"):
        self._base_url = base_url.rstrip("/")
        self.files: dict[str, FileUpload] = {}

    async def upload(self, file: FileUpload) -> StoredFile:
        file_id = str(uuid.uuid4())
        self.files[file_id] = file
        return StoredFile(id=file_id, url=f"{self._base_url}/{file_id}/{file.name}")


class InMemoryRoster:
    """Known contacts per user, seeded up front."""

    def __init__(self, contacts: dict[str, list[Contact]] | None = None):
        self._contacts = {k: list(v) for k, v in (contacts or {}).items()}

    def add(self, user_id: str, contact: Contact) -> None:
        self._contacts.setdefault(user_id, []).append(contact)

    async def list_known_contacts(self, user_id: str) -> list[Contact]:
        return [replace(c) for c in self._contacts.get(user_id, [])]


class ManualSignaling:
    """Signaling channel driven by explicit ``emit`` calls."""

    def __init__(self, fail_place: bool = False):
        self.fail_place = fail_place
        self.placed: list[Call] = []
        self.hung_up: list[str] = []
        self._handlers: list[SignalHandler] = []

    async def place_call(self, call: Call) -> None:
        if self.fail_place:
            raise ConnectionError("signaling channel unavailable")
        self.placed.append(call)

    async def hang_up(self, call: Call) -> None:
        self.hung_up.append(call.id)

    def subscribe(self, handler: SignalHandler) -> Unsubscribe:
        self._handlers.append(handler)
        return _remover(self._handlers, handler)

    async def emit(self, call_id: str, event: SignalEvent) -> None:
        for handler in list(self._handlers):
            await handler(call_id, event)
