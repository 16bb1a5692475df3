"""TypingChannel implementation."""

import asyncio
import time
from typing import Awaitable, Callable, Protocol

from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import Topic
from ..transport import IConversationTransport, Unsubscribe

logger = get_logger(__name__)

RemoteTypingCallback = Callable[[str, bool], Awaitable[None]]


class ITypingChannel(Protocol):
    """Best-effort "is composing" signaling in both directions."""

    async def signal_typing(self, conversation_id: str) -> None:
        """Tell the remote participant the local user is composing."""
        ...

    async def clear_typing(self, conversation_id: str) -> None:
        """Tell the remote participant the local user stopped composing."""
        ...

    def on_remote_typing(self, callback: RemoteTypingCallback) -> Unsubscribe:
        """Subscribe to remote typing state changes."""
        ...

    async def handle_remote_typing(self, conversation_id: str, is_typing: bool) -> None:
        """Apply a typing signal received from the remote participant."""
        ...


class TypingChannel:
    """Debounced outgoing signals, self-expiring incoming indicators.

    A remote indicator that is not refreshed within ``timeout`` seconds
    falls back to not-typing, so a lost "stopped" signal cannot leave it
    stuck on.
    """

    def __init__(
        self,
        transport: IConversationTransport,
        event_bus: IEventBus,
        timeout: float = 5.0,
        debounce: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._transport = transport
        self._event_bus = event_bus
        self._timeout = timeout
        self._debounce = debounce
        self._clock = clock

        self._last_sent: dict[str, float] = {}  # conversation_id -> clock()
        self._remote: dict[str, bool] = {}
        self._timers: dict[str, asyncio.Task] = {}
        self._callbacks: list[RemoteTypingCallback] = []
        self._watches: dict[str, Unsubscribe] = {}

    # Outgoing
    async def signal_typing(self, conversation_id: str) -> None:
        """Tell the remote participant the local user is composing."""
        now = self._clock()
        last = self._last_sent.get(conversation_id)
        if last is not None and now - last < self._debounce:
            return

        self._last_sent[conversation_id] = now
        await self._send(conversation_id, True)

    async def clear_typing(self, conversation_id: str) -> None:
        """Tell the remote participant the local user stopped composing."""
        if self._last_sent.pop(conversation_id, None) is None:
            return
        await self._send(conversation_id, False)

    async def _send(self, conversation_id: str, is_typing: bool) -> None:
        try:
            await self._transport.send_typing(conversation_id, is_typing)
        except Exception as e:
            # No delivery guarantee for typing signals
            logger.debug(
                "Typing signal dropped: %s",
                e,
                extra={"conversation_id": conversation_id},
            )

    # Incoming
    def watch(self, conversation_id: str) -> None:
        """Start listening for the remote participant's typing signals."""
        if conversation_id in self._watches:
            return
        self._watches[conversation_id] = self._transport.subscribe_typing(
            conversation_id, self.handle_remote_typing
        )

    def on_remote_typing(self, callback: RemoteTypingCallback) -> Unsubscribe:
        """Subscribe to remote typing state changes."""
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def is_remote_typing(self, conversation_id: str) -> bool:
        return self._remote.get(conversation_id, False)

    async def handle_remote_typing(self, conversation_id: str, is_typing: bool) -> None:
        """Apply a typing signal received from the remote participant."""
        timer = self._timers.pop(conversation_id, None)
        if timer is not None:
            timer.cancel()

        if is_typing:
            self._timers[conversation_id] = asyncio.create_task(
                self._expire(conversation_id)
            )

        await self._set_remote(conversation_id, is_typing)

    async def _expire(self, conversation_id: str) -> None:
        try:
            await asyncio.sleep(self._timeout)
        except asyncio.CancelledError:
            return

        self._timers.pop(conversation_id, None)
        logger.debug(
            "Typing indicator expired", extra={"conversation_id": conversation_id}
        )
        await self._set_remote(conversation_id, False)

    async def _set_remote(self, conversation_id: str, is_typing: bool) -> None:
        if self._remote.get(conversation_id, False) == is_typing:
            return

        self._remote[conversation_id] = is_typing

        for callback in list(self._callbacks):
            try:
                await callback(conversation_id, is_typing)
            except Exception as e:
                logger.error("Typing callback failed: %s", e, exc_info=True)

        await self._event_bus.emit(
            Topic.TYPING,
            {
                "change": "typing",
                "conversation_id": conversation_id,
                "is_typing": is_typing,
            },
            source="typing_channel",
        )

    async def close(self) -> None:
        """Cancel timers and stop listening."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        for unsubscribe in self._watches.values():
            unsubscribe()
        self._watches.clear()
        self._remote.clear()
        self._last_sent.clear()
