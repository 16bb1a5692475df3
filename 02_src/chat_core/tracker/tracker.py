"""Tracker implementation for creating TraceEvents."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..event_bus import IEventBus
from ..models import ChangeEvent, TraceEvent, Topic
from ..storage import IStorage


class ITracker(Protocol):
    """Creating TraceEvents. Two channels: EventBus subscription + direct calls."""

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        ...


class Tracker:
    """Creates TraceEvents via EventBus subscription and direct track() calls."""

    def __init__(self, event_bus: IEventBus, storage: IStorage):
        self._event_bus = event_bus
        self._storage = storage
        self._started = False

    async def start(self) -> None:
        """Subscribe to all EventBus topics."""
        if self._started:
            return
        for topic in Topic:
            self._event_bus.subscribe(topic, self._handle_change_event)
        self._started = True

    async def stop(self) -> None:
        """Unsubscribe from all topics."""
        if not self._started:
            return
        for topic in Topic:
            self._event_bus.unsubscribe(topic, self._handle_change_event)
        self._started = False

    async def _handle_change_event(self, event: ChangeEvent) -> None:
        """Record a summary of each change event."""
        await self.track(
            event_type=f"{event.topic.value}_changed",
            actor=event.source,
            data={
                "change": event.payload.get("change"),
                "payload_summary": str(event.payload)[:100],
            },
        )

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        trace_event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=datetime.now(timezone.utc),
        )
        await self._storage.save_trace_event(trace_event)
