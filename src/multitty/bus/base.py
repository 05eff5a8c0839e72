"""Abstract base class for the broadcast bus.

Every component talks to its peers only through this interface, so the
transport (in-process fan-out, HTTP relay, ...) can be swapped without
changing any session logic.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from multitty.domain.models import Message

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Message], None]


class Bus(ABC):
    """Best-effort multicast channel between execution contexts.

    Contract:
        - ``publish()`` sends to every currently attached listener, with no
          acknowledgment and no guaranteed arrival.
        - ``subscribe()`` delivers every published message, including the
          publisher's own, to the handler.
        - Messages from one sender reach any one listener in the order they
          were published. Nothing is promised about the relative order of
          messages from different senders.

    Example usage::

        async with HttpBus(url="http://localhost:8750") as bus:
            bus.subscribe(print)
            bus.publish(message)
    """

    @abstractmethod
    def publish(self, message: Message) -> None:
        """Send a message to all listeners. Never blocks."""
        ...

    @abstractmethod
    def subscribe(self, handler: MessageHandler) -> Callable[[], None]:
        """Attach a handler and return a callable that detaches it."""
        ...

    async def start(self) -> None:
        """Open the underlying transport. No-op for in-process buses."""

    async def close(self) -> None:
        """Detach from the transport. Safe to call multiple times."""

    async def __aenter__(self) -> Bus:
        await self.start()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()


def dispatch(handlers: list[MessageHandler], message: Message) -> None:
    """Deliver one message to each handler, isolating handler failures."""
    for handler in list(handlers):
        try:
            handler(message)
        except Exception:
            logger.exception("Bus handler %r failed on %s message", handler, message.kind.value)


class BusError(Exception):
    """Raised when a bus transport cannot be opened or used."""

    def __init__(self, message: str, transport: str = "") -> None:
        super().__init__(message)
        self.transport = transport
