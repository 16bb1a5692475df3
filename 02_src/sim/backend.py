"""Simulated remote side: call signaling with network-like delays and a demo roster."""

import asyncio

from chat_core.logging_config import get_logger
from chat_core.models import Call, Contact, ContactRole, SignalEvent
from chat_core.transport import SignalHandler, Unsubscribe

logger = get_logger(__name__)


DEMO_CONTACTS = [
    Contact(
        id="teacher1",
        name="Dr. Fatima Khan",
        role=ContactRole.TEACHER,
        last_message="I can help with your physics question",
        unread=2,
    ),
    Contact(
        id="teacher2",
        name="Prof. Ahmad Malik",
        role=ContactRole.TEACHER,
        last_message="Let me know if you need more examples",
    ),
    Contact(
        id="technician1",
        name="Usman Ali",
        role=ContactRole.TECHNICIAN,
        last_message="Have you tried resetting the device?",
        unread=1,
    ),
    Contact(
        id="technician2",
        name="Zainab Hussain",
        role=ContactRole.TECHNICIAN,
        last_message="I think we can fix that remotely",
    ),
    Contact(
        id="student1",
        name="Imran Ahmed",
        role=ContactRole.STUDENT,
        last_message="Thanks for your help!",
    ),
]


class SimulatedSignaling:
    """Remote party that rings after ``ring_delay`` and picks up at ``answer_delay``.

    Delays are measured from ``place_call``.
    """

    def __init__(self, ring_delay: float = 1.0, answer_delay: float = 3.0):
        if answer_delay < ring_delay:
            raise ValueError("answer_delay must not be shorter than ring_delay")
        self._ring_delay = ring_delay
        self._answer_delay = answer_delay
        self._handlers: list[SignalHandler] = []
        self._tasks: dict[str, asyncio.Task] = {}

    def subscribe(self, handler: SignalHandler) -> Unsubscribe:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def place_call(self, call: Call) -> None:
        self._tasks[call.id] = asyncio.create_task(self._answer(call.id))

    async def hang_up(self, call: Call) -> None:
        task = self._tasks.pop(call.id, None)
        if task is not None:
            task.cancel()

    async def _answer(self, call_id: str) -> None:
        try:
            await asyncio.sleep(self._ring_delay)
            await self._emit(call_id, SignalEvent.RINGING)
            await asyncio.sleep(self._answer_delay - self._ring_delay)
            await self._emit(call_id, SignalEvent.ACCEPTED)
        except asyncio.CancelledError:
            pass
        finally:
            self._tasks.pop(call_id, None)

    async def _emit(self, call_id: str, event: SignalEvent) -> None:
        logger.debug("Simulated signal %s", event.value, extra={"call_id": call_id})
        for handler in list(self._handlers):
            await handler(call_id, event)
