"""AutoResponder: a scripted remote participant for demos."""

import asyncio
import uuid
from datetime import datetime, timezone

from ..logging_config import get_logger
from ..models import Contact, Message, conversation_id_for
from ..transport import IConversationTransport, Unsubscribe
from .policy import IReplyPolicy, ReplyContext

logger = get_logger(__name__)


class AutoResponder:
    """Answers every message ``partner_id`` sends to ``contact``.

    Reads the message, shows a typing indicator, waits ``reply_delay``
    seconds and replies with text from the reply policy.
    """

    def __init__(
        self,
        contact: Contact,
        partner_id: str,
        transport: IConversationTransport,
        policy: IReplyPolicy,
        reply_delay: float = 2.0,
    ):
        self._contact = contact
        self._partner_id = partner_id
        self._transport = transport
        self._policy = policy
        self._reply_delay = reply_delay
        self._conversation_id = conversation_id_for(contact.id, partner_id)
        self._history: list[Message] = []
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribe: Unsubscribe | None = None

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._transport.subscribe_incoming(
                self._conversation_id, self._handle_incoming
            )

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def _handle_incoming(self, message: Message) -> None:
        self._history.append(message)
        task = asyncio.create_task(self._reply(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _reply(self, message: Message) -> None:
        try:
            await self._transport.mark_read(self._conversation_id, [message.id])
            await self._transport.send_typing(self._conversation_id, True)
            await asyncio.sleep(self._reply_delay)

            text = await self._policy.generate_reply(
                ReplyContext(
                    conversation_id=self._conversation_id,
                    responder_id=self._contact.id,
                    responder_role=self._contact.role,
                    history=list(self._history),
                )
            )
            reply = Message(
                id=str(uuid.uuid4()),
                conversation_id=self._conversation_id,
                text=text,
                sender=self._contact.id,
                recipient=self._partner_id,
                timestamp=datetime.now(timezone.utc),
            )
            await self._transport.send_typing(self._conversation_id, False)
            await self._transport.send_message(self._conversation_id, reply)
            self._history.append(reply)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Auto reply failed: %s",
                e,
                extra={"conversation_id": self._conversation_id},
            )
