"""ConversationService: the command surface the UI layer talks to."""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Iterable, Protocol

from ..attachments import AttachmentManager
from ..directory import ChatSessionDirectory
from ..errors import InvalidTransition
from ..logging_config import get_logger
from ..models import Attachment, ChatSession, Contact, Message, MessageStatus
from ..store import MessageStore
from ..tracker import ITracker
from ..transport import IAttachmentStorage, IConversationTransport, Unsubscribe
from ..typing_signal import TypingChannel

logger = get_logger(__name__)

TERMINAL = (MessageStatus.READ, MessageStatus.FAILED)


class IConversationService(Protocol):
    """Sending, receiving and reading messages for the current user."""

    async def send_message(
        self, recipient_id: str, text: str, attachments: Iterable[Attachment] = ()
    ) -> Message:
        """Optimistically append a message and send it through the transport."""
        ...

    async def resend(self, message_id: str) -> Message:
        """Send the content of a failed message again as a new message."""
        ...

    async def apply_receipt(self, message_id: str, status: MessageStatus) -> Message:
        """Apply a delivery or read receipt reported outside the transport."""
        ...

    async def open_conversation(self, contact_id: str) -> ChatSession:
        """Select a contact and mark their delivered messages read."""
        ...


class ConversationService:
    """Wires the message store, directory and typing channel to the transport.

    Transport failures never reach the caller: they end up as ``failed``
    message status. Out-of-order or duplicate receipts are logged and
    dropped.
    """

    def __init__(
        self,
        user_id: str,
        transport: IConversationTransport,
        store: MessageStore,
        directory: ChatSessionDirectory,
        typing: TypingChannel,
        attachments: AttachmentManager,
        tracker: ITracker,
        attachment_storage: IAttachmentStorage | None = None,
        send_timeout: float = 10.0,
    ):
        self._user_id = user_id
        self._transport = transport
        self._store = store
        self._directory = directory
        self._typing = typing
        self._attachments = attachments
        self._tracker = tracker
        self._attachment_storage = attachment_storage
        self._send_timeout = send_timeout

        self._incoming_subs: dict[str, Unsubscribe] = {}
        self._status_subs: dict[str, Unsubscribe] = {}
        self._running = False

    @property
    def user_id(self) -> str:
        return self._user_id

    async def start(self) -> None:
        """Load known contacts and start listening to their conversations."""
        logger.info("Starting ConversationService for %s", self._user_id)
        self._running = True
        for contact in await self._directory.load():
            session = await self._directory.create_session(contact.id)
            self.watch(session.id)

    async def stop(self) -> None:
        """Stop listening; unacknowledged sends become failed."""
        logger.info("Stopping ConversationService")
        self._running = False

        for unsubscribe in self._incoming_subs.values():
            unsubscribe()
        self._incoming_subs.clear()

        await self._store.fail_pending()
        for unsubscribe in self._status_subs.values():
            unsubscribe()
        self._status_subs.clear()

        await self._typing.close()
        self._attachments.release_all()

    def watch(self, conversation_id: str) -> None:
        """Subscribe to incoming messages and typing for a conversation."""
        if conversation_id not in self._incoming_subs:
            self._incoming_subs[conversation_id] = self._transport.subscribe_incoming(
                conversation_id, self.receive
            )
        self._typing.watch(conversation_id)

    async def start_chat(self, contact: Contact) -> ChatSession:
        """Add a new contact and open a thread with them."""
        self._require_running()
        await self._directory.add_contact(contact)
        session = await self._directory.create_session(contact.id)
        self.watch(session.id)
        return session

    async def open_conversation(self, contact_id: str) -> ChatSession:
        """Select a contact and mark their delivered messages read."""
        self._require_running()
        session = await self._directory.select_contact(contact_id)
        self.watch(session.id)
        await self._read(session.id)
        return session

    def close_conversation(self) -> None:
        self._directory.deselect()

    async def notify_typing(self, recipient_id: str) -> None:
        """Signal that the user is composing a message to ``recipient_id``."""
        session = await self._directory.create_session(recipient_id)
        await self._typing.signal_typing(session.id)

    async def send_message(
        self, recipient_id: str, text: str, attachments: Iterable[Attachment] = ()
    ) -> Message:
        """Optimistically append a message and send it through the transport.

        Returns the stored message; its status keeps changing as receipts
        arrive. Raises ValueError for a message with neither text nor
        attachments.
        """
        self._require_running()

        session = await self._directory.create_session(recipient_id)
        message = Message(
            id=str(uuid.uuid4()),
            conversation_id=session.id,
            text=text.strip(),
            sender=self._user_id,
            recipient=recipient_id,
            timestamp=datetime.now(timezone.utc),
            attachments=list(attachments),
        )
        if not message.has_content():
            raise ValueError("Message needs text or at least one attachment")

        self.watch(session.id)
        self._status_subs[message.id] = self._transport.subscribe_status_updates(
            message.id, self._apply_status
        )

        await self._store.append(message)
        await self._directory.record_outgoing(message)
        await self._typing.clear_typing(session.id)

        drafts = message.attachments
        try:
            if self._attachment_storage is not None and drafts:
                message.attachments = [await self._upload(a) for a in drafts]
            async with asyncio.timeout(self._send_timeout):
                await self._transport.send_message(session.id, message)
        except Exception as e:
            logger.warning(
                "Send failed: %s",
                str(e) or type(e).__name__,
                extra={"message_id": message.id, "conversation_id": session.id},
            )
            await self._apply_status(message.id, MessageStatus.FAILED)
        else:
            await self._apply_status(message.id, MessageStatus.SENT)
        finally:
            # A failed message keeps the previews a resend still has to upload
            if message.attachments is not drafts or message.status is not MessageStatus.FAILED:
                self._attachments.consume(drafts)

        return message

    async def _upload(self, attachment: Attachment) -> Attachment:
        """Upload a staged draft; attachments already stored remotely pass through."""
        if not self._attachments.has_preview(attachment):
            return attachment
        return await self._attachments.upload(attachment, self._attachment_storage)

    async def resend(self, message_id: str) -> Message:
        """Send the content of a failed message again as a new message."""
        original = self._store.get_message(message_id)
        if original.status is not MessageStatus.FAILED:
            raise ValueError(f"Message {message_id} has not failed")

        await self._tracker.track(
            "message_resent",
            "conversation_service",
            {"message_id": message_id},
        )
        return await self.send_message(
            original.recipient, original.text, list(original.attachments)
        )

    async def apply_receipt(self, message_id: str, status: MessageStatus) -> Message:
        """Apply a delivery or read receipt reported outside the transport.

        Raises MessageNotFound for an unknown id. A receipt that would move
        the status backwards is dropped like one from the transport.
        """
        message = self._store.get_message(message_id)
        await self._apply_status(message_id, status)
        return message

    async def _apply_status(self, message_id: str, status: MessageStatus) -> None:
        try:
            message = await self._store.update_status(message_id, status)
        except InvalidTransition as e:
            logger.warning("Dropping receipt: %s", e, extra={"message_id": message_id})
            return

        if message.status in TERMINAL:
            unsubscribe = self._status_subs.pop(message_id, None)
            if unsubscribe:
                unsubscribe()

        await self._tracker.track(
            f"message_{status.value}",
            "conversation_service",
            {"message_id": message_id, "conversation_id": message.conversation_id},
        )

    async def receive(self, message: Message) -> Message | None:
        """Store a message from the remote participant and update counters.

        Returns the stored message, or None for echoes of our own messages
        and duplicates.
        """
        if message.sender == self._user_id:
            return None
        if self._store.contains(message.id):
            logger.debug("Duplicate incoming message", extra={"message_id": message.id})
            return None

        stored = await self._store.receive_incoming(message)
        await self._directory.record_incoming(stored)
        await self._typing.handle_remote_typing(stored.conversation_id, False)

        await self._tracker.track(
            "message_received",
            "conversation_service",
            {"message_id": stored.id, "conversation_id": stored.conversation_id},
        )

        # The thread is on screen, so the message is read right away
        if self._directory.selected_contact_id == stored.sender:
            await self._read(stored.conversation_id)
        return stored

    async def _read(self, conversation_id: str) -> None:
        read = await self._store.mark_read(conversation_id, self._user_id)
        if not read:
            return
        try:
            await self._transport.mark_read(conversation_id, [m.id for m in read])
        except Exception as e:
            logger.warning(
                "Read receipt not sent: %s",
                e,
                extra={"conversation_id": conversation_id},
            )

    def _require_running(self) -> None:
        if not self._running:
            raise RuntimeError("ConversationService not started")
