"""Shared broadcast medium that bus endpoints attach to.

Every attached listener sees every published message, including the
publisher's own. One hub lives in the primary process; in-process
endpoints (LocalBus) attach directly and remote endpoints (HttpBus)
attach through the endpoint server's stream route.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable

from multitty.bus.base import MessageHandler, dispatch
from multitty.domain.models import Message

logger = logging.getLogger(__name__)

DEFAULT_STREAM_QUEUE_SIZE = 4096


class BroadcastHub:
    """Fans messages out to all attached listeners.

    Delivery is run-to-completion: a message published from inside a
    listener is queued and only delivered once the current message has
    reached every listener. Each sender's messages therefore keep their
    publish order at every listener, and listeners never re-enter.
    """

    def __init__(self) -> None:
        self._listeners: list[MessageHandler] = []
        self._pending: deque[Message] = deque()
        self._delivering = False
        self.published = 0

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def attach(self, listener: MessageHandler) -> Callable[[], None]:
        """Attach a listener. Returns a callable that detaches it."""
        self._listeners.append(listener)

        def detach() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return detach

    def publish(self, message: Message) -> None:
        self._pending.append(message)
        self.published += 1
        if self._delivering:
            return
        self._delivering = True
        try:
            while self._pending:
                dispatch(self._listeners, self._pending.popleft())
        finally:
            self._delivering = False

    def open_stream(
        self, maxsize: int = DEFAULT_STREAM_QUEUE_SIZE,
    ) -> tuple[asyncio.Queue[Message], Callable[[], None]]:
        """Attach a queue-backed listener for a remote subscriber.

        The returned queue receives every message published after this
        call. A full queue drops messages for that subscriber only, until
        it has drained some.
        """
        if maxsize <= 0:
            raise ValueError("Subscriber queue size must be positive")
        queue: asyncio.Queue[Message] = asyncio.Queue(maxsize=maxsize)
        dropped = 0

        def enqueue(message: Message) -> None:
            nonlocal dropped
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                dropped += 1
                if dropped == 1:
                    logger.warning("Subscriber queue full (%d messages), dropping until it drains", maxsize)
                return
            if dropped:
                logger.warning("Subscriber resumed after %d dropped messages", dropped)
                dropped = 0

        return queue, self.attach(enqueue)
