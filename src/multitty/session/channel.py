"""Session channel: the protocol layer on top of a raw bus.

Stamps outgoing messages with this context's origin and clock, drops
this context's own echoes before anything looks at ``kind``, and routes
the rest to per-kind handlers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from multitty.bus.base import Bus, MessageHandler, dispatch
from multitty.domain.models import ContextIdentity, Message, MessageKind, Role

logger = logging.getLogger(__name__)

# Kinds only the device-owning context may publish
PRIMARY_ONLY_KINDS = frozenset({MessageKind.OUTPUT})


class SessionChannel:
    """Per-context view of the bus."""

    def __init__(self, bus: Bus, role: Role, identity: ContextIdentity | None = None) -> None:
        self._bus = bus
        self._role = role
        self._identity = identity or ContextIdentity()
        self._handlers: dict[MessageKind, list[MessageHandler]] = defaultdict(list)
        self._unsubscribe: Callable[[], None] | None = bus.subscribe(self._receive)
        self.sent = 0
        self.received = 0
        self.echoes_dropped = 0
        self.violations = 0
        logger.info("Channel opened for %s context (%s)", role.value.upper(), self._identity.origin)

    @property
    def origin(self) -> str:
        return self._identity.origin

    @property
    def role(self) -> Role:
        return self._role

    @property
    def is_primary(self) -> bool:
        return self._role is Role.PRIMARY

    def on(self, kind: MessageKind, handler: MessageHandler) -> Callable[[], None]:
        """Register a handler for peer messages of one kind."""
        handlers = self._handlers[kind]
        handlers.append(handler)

        def off() -> None:
            try:
                handlers.remove(handler)
            except ValueError:
                pass

        return off

    def send(self, kind: MessageKind, unit: int, payload: str | None = None) -> Message | None:
        """Publish a message from this context.

        Returns the published message, or None if the role forbids it.
        """
        if kind in PRIMARY_ONLY_KINDS and not self.is_primary:
            # Role assignment bug, not a runtime condition worth crashing over
            self.violations += 1
            logger.error("Role violation: %s context may not publish %s (unit %d), dropped",
                         self._role.value, kind.value, unit)
            return None
        message = Message(
            kind=kind,
            unit=unit,
            payload=payload,
            origin=self._identity.origin,
            timestamp=self._identity.next_timestamp(),
        )
        self._bus.publish(message)
        self.sent += 1
        return message

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._handlers.clear()

    def _receive(self, message: Message) -> None:
        if message.origin == self._identity.origin:
            self.echoes_dropped += 1
            return
        self.received += 1
        handlers = self._handlers.get(message.kind)
        if handlers:
            dispatch(handlers, message)
