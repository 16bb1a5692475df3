"""EventBus implementation for change notifications."""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol

from ..logging_config import get_logger
from ..models import ChangeEvent, Topic
from ..storage import IStorage

logger = get_logger(__name__)


TopicHandler = Callable[[ChangeEvent], Awaitable[None]]


class IEventBus(Protocol):
    """In-memory pub/sub carrying re-render signals to the UI layer."""

    def subscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Subscribe a handler to a topic."""
        ...

    def unsubscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Remove a previously subscribed handler."""
        ...

    async def publish(self, event: ChangeEvent) -> None:
        """Publish ChangeEvent: calls subscriber callbacks, journals to Storage."""
        ...

    async def emit(self, topic: Topic, payload: dict, source: str) -> ChangeEvent:
        """Build and publish a ChangeEvent."""
        ...


class EventBus:
    """In-memory pub/sub event bus."""

    def __init__(self, storage: IStorage | None = None):
        self._storage = storage
        self._subscribers: dict[Topic, list[TopicHandler]] = {
            topic: [] for topic in Topic
        }

    def subscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Subscribe a handler to a topic."""
        self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Remove a previously subscribed handler."""
        handlers = self._subscribers[topic]
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: ChangeEvent) -> None:
        """Publish ChangeEvent: calls subscriber callbacks, journals to Storage."""
        if not event.id:
            event.id = str(uuid.uuid4())

        # Snapshot so handlers may unsubscribe while running
        handlers = list(self._subscribers.get(event.topic, []))

        if handlers:
            results = await asyncio.gather(
                *[handler(event) for handler in handlers],
                return_exceptions=True,
            )

            for i, result in enumerate(results):
                if isinstance(result, Exception):
                    logger.error(
                        "Error in %s handler %s: %s", event.topic.value, i, result
                    )

        if self._storage is not None:
            await self._storage.save_change_event(event)

    async def emit(self, topic: Topic, payload: dict, source: str) -> ChangeEvent:
        """Build and publish a ChangeEvent."""
        event = ChangeEvent(
            id=str(uuid.uuid4()),
            topic=topic,
            payload=payload,
            source=source,
            timestamp=datetime.now(timezone.utc),
        )
        await self.publish(event)
        return event
