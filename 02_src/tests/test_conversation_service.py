"""Tests for ConversationService."""

import asyncio
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from chat_core.conversation import ConversationService
from chat_core.errors import InvalidTransition, MessageNotFound
from chat_core.models import ContactRole, Message, MessageStatus, conversation_id_for
from chat_core.replies import AutoResponder, CannedReplyPolicy
from chat_core.transport import FileUpload, InMemoryAttachmentStorage

USER_ID = "me"

CONV = conversation_id_for(USER_ID, "teacher1")


async def wait_for(predicate, timeout: float = 1.0) -> None:
    """Poll until ``predicate()`` is true."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


def _remote_message(message_id: str = "r1", text: str = "Any updates?") -> Message:
    return Message(
        id=message_id,
        conversation_id=CONV,
        text=text,
        sender="teacher1",
        recipient=USER_ID,
        timestamp=datetime.now(timezone.utc),
    )


@pytest_asyncio.fixture
async def remote(hub):
    """Remote participant's side of the loopback."""
    return hub.endpoint("teacher1")


class TestSend:
    """Tests for sending messages."""

    @pytest.mark.asyncio
    async def test_delivery_lifecycle(
        self, conversation_service, message_store, hub, remote, recorder
    ):
        """A message moves sending -> sent -> delivered -> read, never back."""
        hub.auto_deliver = False
        message = await conversation_service.send_message("teacher1", "Hello")
        assert message.status is MessageStatus.SENT

        await hub.deliver(message)
        assert message.status is MessageStatus.DELIVERED

        await remote.mark_read(CONV, [message.id])
        assert message.status is MessageStatus.READ
        assert recorder.statuses(message.id) == ["sending", "sent", "delivered", "read"]

        # A late receipt is ignored once the message is read
        await hub.push_status(message.id, MessageStatus.SENT)
        assert message.status is MessageStatus.READ
        with pytest.raises(InvalidTransition):
            await message_store.update_status(message.id, MessageStatus.SENT)

    @pytest.mark.asyncio
    async def test_appended_to_conversation(self, conversation_service, message_store):
        message = await conversation_service.send_message("teacher1", "  Hello  ")

        assert message.text == "Hello"
        assert message.sender == USER_ID
        assert message.conversation_id == CONV
        assert message_store.get_messages(CONV) == [message]

    @pytest.mark.asyncio
    async def test_transport_failure_marks_failed(self, conversation_service, hub):
        hub.fail_next()

        message = await conversation_service.send_message("teacher1", "Hello")

        assert message.status is MessageStatus.FAILED

    @pytest.mark.asyncio
    async def test_timeout_marks_failed(self, conversation_service, transport, monkeypatch):
        async def hang(conversation_id, message):
            await asyncio.sleep(5)

        monkeypatch.setattr(transport, "send_message", hang)

        message = await conversation_service.send_message("teacher1", "Hello")

        assert message.status is MessageStatus.FAILED

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, conversation_service, message_store):
        with pytest.raises(ValueError):
            await conversation_service.send_message("teacher1", "   ")
        assert message_store.get_messages(CONV) == []

    @pytest.mark.asyncio
    async def test_requires_start(
        self, transport, message_store, directory, typing_channel, attachments, tracker
    ):
        service = ConversationService(
            USER_ID, transport, message_store, directory, typing_channel, attachments, tracker
        )
        with pytest.raises(RuntimeError):
            await service.send_message("teacher1", "Hello")

    @pytest.mark.asyncio
    async def test_send_clears_typing(self, conversation_service, transport):
        await conversation_service.notify_typing("teacher1")
        await conversation_service.send_message("teacher1", "Hello")

        assert transport.typing_sent == [(CONV, True), (CONV, False)]

    @pytest.mark.asyncio
    async def test_send_traced(self, conversation_service, storage):
        message = await conversation_service.send_message("teacher1", "Hello")

        events = await storage.get_trace_events(event_types=["message_sent"])
        assert events[0].data["message_id"] == message.id

    @pytest.mark.asyncio
    async def test_stop_fails_unacknowledged(self, conversation_service, message_store):
        pending = Message(
            id="m-pending",
            conversation_id=CONV,
            text="Hello",
            sender=USER_ID,
            recipient="teacher1",
            timestamp=datetime.now(timezone.utc),
        )
        await message_store.append(pending)

        await conversation_service.stop()

        assert pending.status is MessageStatus.FAILED


class TestAttachments:
    """Tests for sending staged attachments."""

    @pytest.mark.asyncio
    async def test_attachments_consumed_after_send(self, conversation_service, attachments):
        staged = attachments.stage([FileUpload("photo.png", "image/png", b"png")]).staged

        message = await conversation_service.send_message("teacher1", "", staged)

        assert message.status is MessageStatus.SENT
        assert [a.name for a in message.attachments] == ["photo.png"]
        assert attachments.active_previews == 0

    @pytest.mark.asyncio
    async def test_attachments_uploaded(
        self, transport, message_store, directory, typing_channel, attachments, tracker
    ):
        files = InMemoryAttachmentStorage()
        service = ConversationService(
            USER_ID,
            transport,
            message_store,
            directory,
            typing_channel,
            attachments,
            tracker,
            attachment_storage=files,
        )
        await service.start()
        staged = attachments.stage([FileUpload("notes.pdf", "application/pdf", b"%PDF")]).staged

        message = await service.send_message("teacher1", "Notes attached", staged)

        assert message.attachments[0].url.startswith("memory://attachments/")
        assert len(files.files) == 1
        assert attachments.active_previews == 0
        await service.stop()


class TestResend:
    """Tests for resending failed messages."""

    @pytest.mark.asyncio
    async def test_resend_failed(self, conversation_service, hub, storage):
        hub.fail_next()
        failed = await conversation_service.send_message("teacher1", "Hello")

        retry = await conversation_service.resend(failed.id)

        assert retry.id != failed.id
        assert retry.text == "Hello"
        assert retry.status is MessageStatus.SENT
        assert failed.status is MessageStatus.FAILED
        assert await storage.get_trace_events(event_types=["message_resent"])

    @pytest.mark.asyncio
    async def test_resend_uploaded_attachment(
        self, transport, hub, message_store, directory, typing_channel, attachments, tracker
    ):
        """An attachment uploaded before the send failed goes out as stored."""
        files = InMemoryAttachmentStorage()
        service = ConversationService(
            USER_ID,
            transport,
            message_store,
            directory,
            typing_channel,
            attachments,
            tracker,
            attachment_storage=files,
        )
        await service.start()
        staged = attachments.stage([FileUpload("notes.pdf", "application/pdf", b"%PDF")]).staged
        hub.fail_next()

        failed = await service.send_message("teacher1", "Notes attached", staged)
        assert failed.status is MessageStatus.FAILED
        assert attachments.active_previews == 0

        retry = await service.resend(failed.id)

        assert retry.status is MessageStatus.SENT
        assert retry.attachments[0].url == failed.attachments[0].url
        assert retry.attachments[0].url.startswith("memory://attachments/")
        assert len(files.files) == 1
        await service.stop()

    @pytest.mark.asyncio
    async def test_failed_send_keeps_previews(self, conversation_service, hub, attachments):
        """Without remote storage the previews stay alive until a resend succeeds."""
        staged = attachments.stage([FileUpload("photo.png", "image/png", b"png")]).staged
        hub.fail_next()

        failed = await conversation_service.send_message("teacher1", "", staged)
        assert failed.status is MessageStatus.FAILED
        assert attachments.active_previews == 1

        retry = await conversation_service.resend(failed.id)

        assert retry.status is MessageStatus.SENT
        assert attachments.active_previews == 0

    @pytest.mark.asyncio
    async def test_resend_requires_failure(self, conversation_service):
        message = await conversation_service.send_message("teacher1", "Hello")
        with pytest.raises(ValueError):
            await conversation_service.resend(message.id)


class TestReceipts:
    """Tests for receipts reported outside the transport."""

    @pytest.mark.asyncio
    async def test_read_receipt_closes_subscription(
        self, conversation_service, storage
    ):
        message = await conversation_service.send_message("teacher1", "Hello")
        assert message.status is MessageStatus.SENT
        assert message.id in conversation_service._status_subs

        updated = await conversation_service.apply_receipt(message.id, MessageStatus.READ)

        assert updated.status is MessageStatus.READ
        assert message.id not in conversation_service._status_subs
        assert await storage.get_trace_events(event_types=["message_read"])

    @pytest.mark.asyncio
    async def test_stale_receipt_dropped(self, conversation_service):
        message = await conversation_service.send_message("teacher1", "Hello")
        await conversation_service.apply_receipt(message.id, MessageStatus.READ)

        updated = await conversation_service.apply_receipt(message.id, MessageStatus.DELIVERED)

        assert updated.status is MessageStatus.READ

    @pytest.mark.asyncio
    async def test_unknown_message(self, conversation_service):
        with pytest.raises(MessageNotFound):
            await conversation_service.apply_receipt("missing", MessageStatus.READ)


class TestReceive:
    """Tests for incoming messages."""

    @pytest.mark.asyncio
    async def test_incoming_counts_unread(
        self, conversation_service, directory, remote, hub, make_contact
    ):
        await conversation_service.start_chat(make_contact())

        await remote.send_message(CONV, _remote_message())
        await hub.drain()

        session = directory.get_session(CONV)
        assert session.unread_count == 1
        assert directory.get_contact("teacher1").unread == 1
        assert session.last_message.text == "Any updates?"

    @pytest.mark.asyncio
    async def test_open_conversation_reads(
        self, conversation_service, directory, message_store, transport, make_contact
    ):
        await conversation_service.start_chat(make_contact())
        incoming = await conversation_service.receive(_remote_message())
        assert incoming.status is MessageStatus.DELIVERED

        session = await conversation_service.open_conversation("teacher1")

        assert session.unread_count == 0
        assert incoming.status is MessageStatus.READ
        assert transport.read_receipts == [incoming.id]

    @pytest.mark.asyncio
    async def test_incoming_while_open_is_read(
        self, conversation_service, directory, make_contact
    ):
        await conversation_service.start_chat(make_contact())
        await conversation_service.open_conversation("teacher1")

        incoming = await conversation_service.receive(_remote_message())

        assert incoming.status is MessageStatus.READ
        assert directory.get_session(CONV).unread_count == 0

    @pytest.mark.asyncio
    async def test_duplicates_and_echoes_ignored(self, conversation_service, message_store):
        assert await conversation_service.receive(_remote_message()) is not None
        assert await conversation_service.receive(_remote_message()) is None

        echo = _remote_message("m-own")
        echo.sender = USER_ID
        assert await conversation_service.receive(echo) is None
        assert len(message_store.get_messages(CONV)) == 1

    @pytest.mark.asyncio
    async def test_incoming_clears_remote_typing(self, conversation_service, typing_channel):
        await typing_channel.handle_remote_typing(CONV, True)
        await conversation_service.receive(_remote_message())
        assert not typing_channel.is_remote_typing(CONV)


class TestAutoResponder:
    """Tests for the scripted remote participant."""

    @pytest.mark.asyncio
    async def test_replies_over_loopback(
        self, conversation_service, message_store, remote, typing_channel, make_contact
    ):
        contact = make_contact()
        await conversation_service.start_chat(contact)
        responder = AutoResponder(
            contact,
            USER_ID,
            remote,
            CannedReplyPolicy(replies={ContactRole.TEACHER: ("Sure, send it over.",)}),
            reply_delay=0.01,
        )
        await responder.start()
        typing_seen = []

        async def on_typing(conversation_id, is_typing):
            typing_seen.append(is_typing)

        typing_channel.on_remote_typing(on_typing)

        sent = await conversation_service.send_message("teacher1", "Can you help?")
        await wait_for(lambda: len(message_store.get_messages(CONV)) == 2)

        reply = message_store.get_messages(CONV)[1]
        assert reply.text == "Sure, send it over."
        assert reply.sender == "teacher1"
        assert sent.status is MessageStatus.READ
        assert typing_seen == [True, False]
        await responder.stop()
