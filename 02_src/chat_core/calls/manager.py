"""CallSessionManager implementation."""

import uuid
from datetime import datetime, timezone
from typing import Callable, Protocol

from ..errors import CallAlreadyActive, CallEnded, CallNotFound, InvalidTransition
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import Call, CallStatus, CallType, SignalEvent, Topic
from ..models.serialization import call_to_dict
from ..state_machine import StateMachine
from ..transport import ICallSignaling, Unsubscribe

logger = get_logger(__name__)


# Hang-up is legal from every live state.
CALL_TRANSITIONS: dict[CallStatus, frozenset[CallStatus]] = {
    CallStatus.CONNECTING: frozenset(
        {CallStatus.RINGING, CallStatus.ONGOING, CallStatus.ENDED}
    ),
    CallStatus.RINGING: frozenset({CallStatus.ONGOING, CallStatus.ENDED}),
    CallStatus.ONGOING: frozenset({CallStatus.ENDED}),
    CallStatus.ENDED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ICallSessionManager(Protocol):
    """Lifecycle of audio/video calls, one live call per conversation."""

    async def initiate(
        self, conversation_id: str, recipient: str, call_type: CallType
    ) -> Call:
        """Create a call in ``connecting`` and start signaling it."""
        ...

    async def handle_signal(self, call_id: str, event: SignalEvent) -> None:
        """Apply a signaling event to a call."""
        ...

    async def toggle_mute(self, call_id: str) -> Call:
        ...

    async def toggle_video(self, call_id: str) -> Call:
        ...

    async def end(self, call_id: str) -> Call:
        """Hang up. Legal from any state."""
        ...


class CallSessionManager:
    """Drives calls through connecting -> ringing -> ongoing -> ended."""

    def __init__(
        self,
        signaling: ICallSignaling,
        event_bus: IEventBus,
        user_id: str,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._signaling = signaling
        self._event_bus = event_bus
        self._user_id = user_id
        self._clock = clock
        self._machine = StateMachine("call", CALL_TRANSITIONS)

        self._calls: dict[str, Call] = {}
        self._active: dict[str, str] = {}  # conversation_id -> call_id
        self._unsubscribe: Unsubscribe | None = None

    async def start(self) -> None:
        """Subscribe to the signaling channel."""
        if self._unsubscribe is None:
            self._unsubscribe = self._signaling.subscribe(self.handle_signal)

    async def stop(self) -> None:
        """End live calls and unsubscribe."""
        await self.end_all()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def initiate(
        self, conversation_id: str, recipient: str, call_type: CallType
    ) -> Call:
        """Create a call in ``connecting`` and start signaling it.

        Raises CallAlreadyActive if the conversation has a call that has
        not ended; that call is left untouched.
        """
        existing = self.active_call(conversation_id)
        if existing is not None:
            raise CallAlreadyActive(conversation_id, existing.id)

        call = Call(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            type=CallType(call_type),
            initiator=self._user_id,
            recipient=recipient,
            start_time=self._clock(),
        )
        self._calls[call.id] = call
        self._active[conversation_id] = call.id

        logger.info(
            "Initiating %s call to %s",
            call.type.value,
            recipient,
            extra={"call_id": call.id, "conversation_id": conversation_id},
        )
        await self._changed("initiated", call)

        try:
            await self._signaling.place_call(call)
        except Exception as e:
            logger.error(
                "Call signaling failed: %s", e, extra={"call_id": call.id}
            )
            await self._finish(call, notify_remote=False)

        return call

    async def handle_signal(self, call_id: str, event: SignalEvent) -> None:
        """Apply a signaling event to a call.

        Late or duplicate events (e.g. "accepted" after hang-up) are logged
        and ignored.
        """
        call = self._calls.get(call_id)
        if call is None:
            logger.warning("Signal %s for unknown call", event, extra={"call_id": call_id})
            return

        event = SignalEvent(event)
        try:
            if event is SignalEvent.RINGING:
                await self._advance(call, CallStatus.RINGING)
            elif event is SignalEvent.ACCEPTED:
                await self._advance(call, CallStatus.ONGOING)
            elif event is SignalEvent.ENDED_BY_REMOTE:
                if call.is_active:
                    await self._finish(call, notify_remote=False)
        except InvalidTransition as e:
            logger.warning("Ignoring call signal: %s", e, extra={"call_id": call_id})

    async def toggle_mute(self, call_id: str) -> Call:
        call = self._live_call(call_id)
        call.is_muted = not call.is_muted
        await self._changed("media", call)
        return call

    async def toggle_video(self, call_id: str) -> Call:
        call = self._live_call(call_id)
        call.is_video_off = not call.is_video_off
        await self._changed("media", call)
        return call

    async def end(self, call_id: str) -> Call:
        """Hang up. Legal from any state; ending an ended call is a no-op."""
        call = self.get_call(call_id)
        if call.is_active:
            await self._finish(call, notify_remote=True)
        return call

    async def end_all(self) -> None:
        for call_id in list(self._active.values()):
            await self.end(call_id)

    def get_call(self, call_id: str) -> Call:
        try:
            return self._calls[call_id]
        except KeyError:
            raise CallNotFound(call_id) from None

    def active_call(self, conversation_id: str) -> Call | None:
        call_id = self._active.get(conversation_id)
        if call_id is None:
            return None
        call = self._calls[call_id]
        return call if call.is_active else None

    def clear(self) -> None:
        self._calls.clear()
        self._active.clear()

    def _live_call(self, call_id: str) -> Call:
        call = self.get_call(call_id)
        if not call.is_active:
            raise CallEnded(call_id)
        return call

    async def _advance(self, call: Call, status: CallStatus) -> None:
        call.status = self._machine.transition(call.status, status)
        if status is CallStatus.ONGOING:
            call.answered_at = self._clock()
        logger.info(
            "Call is %s", status.value, extra={"call_id": call.id}
        )
        await self._changed("status", call)

    async def _finish(self, call: Call, notify_remote: bool) -> None:
        call.status = self._machine.transition(call.status, CallStatus.ENDED)
        call.end_time = self._clock()
        if call.answered_at is None:
            call.duration = 0.0
        else:
            call.duration = max(
                (call.end_time - call.answered_at).total_seconds(), 0.0
            )
        if self._active.get(call.conversation_id) == call.id:
            del self._active[call.conversation_id]

        logger.info(
            "Call ended after %.1fs", call.duration, extra={"call_id": call.id}
        )
        await self._changed("status", call)

        if notify_remote:
            try:
                await self._signaling.hang_up(call)
            except Exception as e:
                logger.warning("Hang-up signal failed: %s", e, extra={"call_id": call.id})

    async def _changed(self, change: str, call: Call) -> None:
        await self._event_bus.emit(
            Topic.CALLS,
            {
                "change": change,
                "conversation_id": call.conversation_id,
                "call": call_to_dict(call),
            },
            source="call_manager",
        )
