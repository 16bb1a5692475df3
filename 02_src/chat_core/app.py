"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .attachments import AttachmentConstraints, AttachmentManager
from .calls import CallSessionManager
from .config import MessagingSettings, resolve_db_path
from .conversation import ConversationService
from .directory import ChatSessionDirectory
from .event_bus import EventBus
from .logging_config import get_logger
from .replies import AutoResponder, CannedReplyPolicy, IReplyPolicy, LLMReplyPolicy
from .storage import IStorage, Storage
from .store import MessageStore
from .tracker import Tracker
from .transport import (
    IAttachmentStorage,
    ICallSignaling,
    IConversationTransport,
    InMemoryRoster,
    IRoster,
    LoopbackHub,
    ManualSignaling,
)
from .typing_signal import TypingChannel

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Drop all in-memory state and the journal."""
        ...


class Application:
    """Main application bootstrap.

    Collaborators that are not passed in fall back to in-process versions:
    a LoopbackHub transport, manual call signaling and an empty roster.
    """

    def __init__(
        self,
        db_path: str | None = None,
        settings: MessagingSettings | None = None,
        transport: IConversationTransport | None = None,
        signaling: ICallSignaling | None = None,
        roster: IRoster | None = None,
        attachment_storage: IAttachmentStorage | None = None,
        reply_policy: IReplyPolicy | None = None,
        hub: LoopbackHub | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self.settings = settings or MessagingSettings.from_env()

        self._hub = hub if hub is not None else (None if transport else LoopbackHub())
        self._transport = transport or self._hub.endpoint(self.settings.current_user_id)
        self._signaling = signaling or ManualSignaling()
        self._roster = roster or InMemoryRoster()
        self._attachment_storage = attachment_storage
        self._reply_policy = reply_policy

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._event_bus: EventBus | None = None
        self._tracker: Tracker | None = None
        self._store: MessageStore | None = None
        self._directory: ChatSessionDirectory | None = None
        self._typing: TypingChannel | None = None
        self._attachments: AttachmentManager | None = None
        self._calls: CallSessionManager | None = None
        self._conversations: ConversationService | None = None
        self._responders: list[AutoResponder] = []

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        user_id = self.settings.current_user_id

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. EventBus (journals to Storage)
        self._event_bus = EventBus(self._storage)

        # 3. Tracker (EventBus + Storage)
        self._tracker = Tracker(self._event_bus, self._storage)
        await self._tracker.start()

        # 4. Messaging components (EventBus)
        self._store = MessageStore(self._event_bus)
        self._directory = ChatSessionDirectory(
            self._event_bus, user_id, roster=self._roster
        )
        self._typing = TypingChannel(
            self._transport,
            self._event_bus,
            timeout=self.settings.typing_timeout,
            debounce=self.settings.typing_debounce,
        )
        self._attachments = AttachmentManager(
            AttachmentConstraints(
                max_size=self.settings.max_attachment_bytes,
                allowed_types=self.settings.allowed_types,
            )
        )
        self._calls = CallSessionManager(self._signaling, self._event_bus, user_id)
        await self._calls.start()

        # 5. ConversationService (everything above)
        self._conversations = ConversationService(
            user_id=user_id,
            transport=self._transport,
            store=self._store,
            directory=self._directory,
            typing=self._typing,
            attachments=self._attachments,
            tracker=self._tracker,
            attachment_storage=self._attachment_storage,
            send_timeout=self.settings.send_timeout,
        )
        await self._conversations.start()
        logger.info("ConversationService started")

        # 6. Demo responders on the loopback hub
        if self.settings.auto_reply and self._hub is not None:
            await self._start_responders()

        logger.info("All components initialized successfully")

    async def _start_responders(self) -> None:
        policy = self._reply_policy
        if policy is None:
            policy = (
                LLMReplyPolicy() if os.getenv("ANTHROPIC_API_KEY") else CannedReplyPolicy()
            )

        for contact in self._directory.list_contacts():
            responder = AutoResponder(
                contact=contact,
                partner_id=self.settings.current_user_id,
                transport=self._hub.endpoint(contact.id),
                policy=policy,
                reply_delay=self.settings.reply_delay,
            )
            await responder.start()
            self._responders.append(responder)
        logger.info("Started %s auto responders", len(self._responders))

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        for responder in self._responders:
            await responder.stop()
        self._responders.clear()
        if self._conversations:
            await self._conversations.stop()
        if self._calls:
            await self._calls.stop()
        if self._tracker:
            await self._tracker.stop()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Drop all in-memory state and the journal."""
        # 1. Pause active processes
        for responder in self._responders:
            await responder.stop()
        self._responders.clear()
        if self._conversations:
            await self._conversations.stop()
        if self._calls:
            await self._calls.end_all()
            self._calls.clear()

        # 2. Clear state
        if self._store:
            self._store.clear()
        if self._directory:
            self._directory.clear()
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

        # 3. Restart
        if self._conversations:
            await self._conversations.start()
        if self.settings.auto_reply and self._hub is not None:
            await self._start_responders()
        logger.info("Reset complete")

    def _require(self, component):
        if component is None:
            raise RuntimeError("Application not started")
        return component

    @property
    def hub(self) -> LoopbackHub | None:
        return self._hub

    @property
    def storage(self) -> IStorage:
        return self._require(self._storage)

    @property
    def event_bus(self) -> EventBus:
        return self._require(self._event_bus)

    @property
    def tracker(self) -> Tracker:
        return self._require(self._tracker)

    @property
    def store(self) -> MessageStore:
        return self._require(self._store)

    @property
    def directory(self) -> ChatSessionDirectory:
        return self._require(self._directory)

    @property
    def typing(self) -> TypingChannel:
        return self._require(self._typing)

    @property
    def attachments(self) -> AttachmentManager:
        return self._require(self._attachments)

    @property
    def calls(self) -> CallSessionManager:
        return self._require(self._calls)

    @property
    def conversations(self) -> ConversationService:
        return self._require(self._conversations)
