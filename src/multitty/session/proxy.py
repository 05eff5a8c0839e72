"""Session proxy for secondary contexts.

Presents one unit's I/O stream on a local surface: bus output for the
unit is rendered, local keystrokes are published as bus input.
"""

from __future__ import annotations

import logging
from typing import Callable

from multitty.domain.models import PRIMARY_UNIT, Message, MessageKind, is_valid_unit
from multitty.session.channel import SessionChannel
from multitty.session.registry import SessionRegistry
from multitty.surface.base import Surface

logger = logging.getLogger(__name__)


class SessionProxy:
    """Binds a surface to one secondary unit over the bus."""

    def __init__(
        self,
        channel: SessionChannel,
        registry: SessionRegistry,
        surface: Surface,
        unit: int,
    ) -> None:
        if not is_valid_unit(unit) or unit == PRIMARY_UNIT:
            raise ValueError(f"Secondary unit must be in 1..7, got {unit}")
        self._channel = channel
        self._registry = registry
        self._surface = surface
        self._unit = unit
        self._off_output: Callable[[], None] | None = None
        self._started = False

    @property
    def unit(self) -> int:
        return self._unit

    def start(self) -> None:
        """Wire the surface and announce the unit once."""
        if self._started:
            return
        self._off_output = self._channel.on(MessageKind.OUTPUT, self._on_output)
        self._surface.on_keystroke(self._on_keystroke)
        self._registry.register(self._unit)
        self._registry.ping()
        self._started = True
        logger.info("Proxy started for unit %d", self._unit)

    def stop(self) -> None:
        if not self._started:
            return
        self._surface.on_keystroke(None)
        if self._off_output is not None:
            self._off_output()
            self._off_output = None
        for unit in self._registry.owned_units:
            self._registry.unregister(unit)
        self._started = False
        logger.info("Proxy stopped for unit %d", self._unit)

    def _on_output(self, message: Message) -> None:
        if message.unit != self._unit or message.payload is None:
            return
        self._surface.render(message.payload)

    def _on_keystroke(self, text: str) -> None:
        if not text:
            return
        self._channel.send(MessageKind.INPUT, self._unit, text)
