"""In-process bus endpoint.

Attaches to a BroadcastHub in the same process. Used by the primary
context (which hosts the hub) and by tests that run several contexts
side by side.
"""

from __future__ import annotations

import logging
from typing import Callable

from multitty.bus.base import Bus, MessageHandler, dispatch
from multitty.bus.hub import BroadcastHub
from multitty.domain.models import Message

logger = logging.getLogger(__name__)


class LocalBus(Bus):
    """A bus endpoint backed by an in-memory hub."""

    def __init__(self, hub: BroadcastHub) -> None:
        self._hub = hub
        self._handlers: list[MessageHandler] = []
        self._detach: Callable[[], None] | None = hub.attach(self._deliver)

    @property
    def hub(self) -> BroadcastHub:
        return self._hub

    def publish(self, message: Message) -> None:
        if self._detach is None:
            logger.debug("Publish on closed LocalBus dropped: %s", message.kind.value)
            return
        self._hub.publish(message)

    def subscribe(self, handler: MessageHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

        return unsubscribe

    async def close(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None

    def _deliver(self, message: Message) -> None:
        dispatch(self._handlers, message)
