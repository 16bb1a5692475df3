"""WebSocket stream of change events for the UI layer."""

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ...app import Application
from ...logging_config import get_logger
from ...models import ChangeEvent, Topic

logger = get_logger(__name__)


def create_events_router(app: Application) -> APIRouter:
    """Create events router."""
    router = APIRouter(tags=["events"])

    @router.websocket("/ws/events")
    async def stream_events(websocket: WebSocket) -> None:
        """Push every ChangeEvent to the client as JSON until it disconnects."""
        await websocket.accept()
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()

        async def forward(event: ChangeEvent) -> None:
            queue.put_nowait(event)

        for topic in Topic:
            app.event_bus.subscribe(topic, forward)

        try:
            while True:
                event = await queue.get()
                await websocket.send_json(
                    {
                        "id": event.id,
                        "topic": event.topic.value,
                        "source": event.source,
                        "payload": event.payload,
                        "timestamp": event.timestamp.isoformat(),
                    }
                )
        except WebSocketDisconnect:
            logger.info("Event stream client disconnected")
        finally:
            for topic in Topic:
                app.event_bus.unsubscribe(topic, forward)

    return router
