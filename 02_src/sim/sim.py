"""SIM implementation - scripted chat scenario driven over the HTTP API."""

import asyncio
import random
from typing import Protocol

import httpx

from chat_core.logging_config import get_logger
from chat_core.tracker import ITracker

logger = get_logger(__name__)


class ISim(Protocol):
    """Exercise the API the way a UI session would."""

    async def start(self) -> None:
        """Start scripted scenario."""
        ...

    async def stop(self) -> None:
        """Stop scenario."""
        ...


# contact_id -> messages the local user sends
SCRIPT = {
    "teacher1": ["Hello!", "Can you explain Newton's third law?", "Thanks, that helps"],
    "technician1": ["My laptop will not boot", "Yes, I already restarted it"],
}


class Sim:
    """SIM with a scripted scenario: chats, typing and one audio call."""

    def __init__(
        self,
        api_url: str = "http://localhost:8000",
        tracker: ITracker | None = None,
        pause: tuple[float, float] = (1.0, 3.0),
    ):
        self._api_url = api_url
        self._tracker = tracker
        self._pause = pause
        self._running = False
        self._task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None

    def set_tracker(self, tracker: ITracker) -> None:
        """Inject tracker for SIM trace events."""
        self._tracker = tracker

    async def start(self) -> None:
        """Start scripted scenario."""
        if self._running:
            return

        self._running = True
        self._client = httpx.AsyncClient(base_url=self._api_url, timeout=10.0)
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        """Stop scenario."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._client:
            await self._client.aclose()
            self._client = None

    async def _run_scenario(self) -> None:
        """Run scripted scenario."""
        message_count = sum(len(m) for m in SCRIPT.values())
        try:
            await self._track("sim_started", {"message_count": message_count})

            for contact_id, lines in SCRIPT.items():
                if not self._running:
                    break

                await self._post(f"/api/contacts/{contact_id}/select")
                for text in lines:
                    if not self._running:
                        break
                    await self._post(f"/api/conversations/{contact_id}/typing")
                    await asyncio.sleep(random.uniform(*self._pause))
                    await self._post(
                        "/api/messages", {"recipient_id": contact_id, "text": text}
                    )

            call = await self._post(
                "/api/calls", {"contact_id": "teacher1", "type": "audio"}
            )
            if call and self._running:
                await asyncio.sleep(6)
                await self._post(f"/api/calls/{call['id']}/end")

        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("SIM scenario error: %s", e)
        finally:
            await self._track("sim_completed", {"message_count": message_count})

    async def _post(self, path: str, payload: dict | None = None) -> dict | None:
        """POST to the API; errors are logged, not raised."""
        if not self._client:
            return None

        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error("SIM: request to %s failed: %s", path, e)
            return None

        if response.status_code != 200:
            logger.error("SIM: %s returned %s", path, response.status_code)
            return None

        logger.info("SIM: %s ok", path)
        return response.json()

    async def _track(self, event_type: str, data: dict) -> None:
        if self._tracker:
            await self._tracker.track(event_type, "sim", {"scenario": "scripted", **data})
