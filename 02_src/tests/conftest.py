"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

USER_ID = "me"


class FakeClock:
    """Controllable datetime clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class EventRecorder:
    """Collects every ChangeEvent published on a bus."""

    def __init__(self, event_bus):
        from chat_core.models import Topic

        self.events = []
        for topic in Topic:
            event_bus.subscribe(topic, self._record)

    async def _record(self, event) -> None:
        self.events.append(event)

    def of(self, topic):
        return [e for e in self.events if e.topic is topic]

    def statuses(self, message_id: str) -> list[str]:
        """Status sequence observed for one message."""
        from chat_core.models import Topic

        return [
            e.payload["message"]["status"]
            for e in self.of(Topic.MESSAGES)
            if e.payload["message"]["id"] == message_id
        ]


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from chat_core.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def event_bus(storage):
    """Create EventBus with storage."""
    from chat_core.event_bus import EventBus

    return EventBus(storage)


@pytest.fixture
def recorder(event_bus):
    return EventRecorder(event_bus)


@pytest.fixture
def tracker(storage, event_bus):
    """Create Tracker with storage and event bus."""
    from chat_core.tracker import Tracker

    return Tracker(event_bus=event_bus, storage=storage)


@pytest.fixture
def mock_tracker():
    tr = Mock()
    tr.track = AsyncMock()
    return tr


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def message_store(event_bus):
    from chat_core.store import MessageStore

    return MessageStore(event_bus)


@pytest.fixture
def hub():
    from chat_core.transport import LoopbackHub

    return LoopbackHub()


@pytest.fixture
def transport(hub):
    return hub.endpoint(USER_ID)


@pytest.fixture
def directory(event_bus):
    from chat_core.directory import ChatSessionDirectory

    return ChatSessionDirectory(event_bus, USER_ID)


@pytest.fixture
def attachments():
    from chat_core.attachments import AttachmentManager

    return AttachmentManager()


@pytest_asyncio.fixture
async def typing_channel(transport, event_bus):
    from chat_core.typing_signal import TypingChannel

    channel = TypingChannel(transport, event_bus, timeout=0.05, debounce=1.0)
    yield channel
    await channel.close()


@pytest.fixture
def signaling():
    from chat_core.transport import ManualSignaling

    return ManualSignaling()


@pytest_asyncio.fixture
async def call_manager(signaling, event_bus, clock):
    from chat_core.calls import CallSessionManager

    manager = CallSessionManager(signaling, event_bus, USER_ID, clock=clock)
    await manager.start()
    yield manager
    await manager.stop()


@pytest.fixture
def make_contact():
    from chat_core.models import Contact, ContactRole

    def factory(contact_id: str = "teacher1", name: str = "Dr. Fatima Khan",
                role: ContactRole = ContactRole.TEACHER, **kwargs) -> Contact:
        return Contact(id=contact_id, name=name, role=role, **kwargs)

    return factory


@pytest_asyncio.fixture
async def conversation_service(
    transport, message_store, directory, typing_channel, attachments, tracker
):
    """Create a started ConversationService for USER_ID."""
    from chat_core.conversation import ConversationService

    service = ConversationService(
        user_id=USER_ID,
        transport=transport,
        store=message_store,
        directory=directory,
        typing=typing_channel,
        attachments=attachments,
        tracker=tracker,
        send_timeout=0.5,
    )
    await service.start()
    yield service
    await service.stop()

