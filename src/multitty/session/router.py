"""I/O router for the primary context.

Bridges the device's per-unit byte streams onto the bus: output for
secondary units is teed onto the bus, input arriving from secondary
contexts is fed to the device one character at a time.
"""

from __future__ import annotations

import logging
from typing import Callable

from multitty.device.base import Device
from multitty.domain.models import PRIMARY_UNIT, Message, MessageKind, is_valid_unit
from multitty.session.channel import SessionChannel
from multitty.surface.base import Surface

logger = logging.getLogger(__name__)


class IORouter:
    """Owns the device side of the multi-session model.

    Only the primary context may build one; the device and its unit-0
    surface are exclusively held here.
    """

    def __init__(
        self,
        channel: SessionChannel,
        device: Device,
        surface: Surface,
        unit: int = PRIMARY_UNIT,
    ) -> None:
        if not channel.is_primary:
            raise ValueError("IORouter requires a primary channel")
        self._channel = channel
        self._device = device
        self._surface = surface
        self._unit = unit
        self._off_input: Callable[[], None] | None = None
        self._attached = False
        self.bytes_forwarded = 0
        self.bytes_injected = 0

    @property
    def is_attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        """Install the router as the device output handler and input sink."""
        if self._attached:
            logger.warning("Router already attached")
            return
        self._device.set_output_handler(self._on_device_output)
        self._surface.on_keystroke(self._on_local_keystroke)
        self._off_input = self._channel.on(MessageKind.INPUT, self._on_input)
        self._attached = True
        logger.info("Router attached: device output teed for units != %d", self._unit)

    def detach(self) -> None:
        if not self._attached:
            return
        self._device.set_output_handler(None)
        self._surface.on_keystroke(None)
        if self._off_input is not None:
            self._off_input()
            self._off_input = None
        self._attached = False
        logger.info("Router detached")

    def _on_device_output(self, unit: int, byte: int) -> None:
        char = chr(byte)
        if unit == self._unit:
            self._surface.render(char)
            return
        if not is_valid_unit(unit):
            logger.warning("Device output for invalid unit %d dropped", unit)
            return
        self._channel.send(MessageKind.OUTPUT, unit, char)
        self.bytes_forwarded += 1

    def _on_input(self, message: Message) -> None:
        if not is_valid_unit(message.unit):
            logger.warning("Input for invalid unit %d from %s dropped", message.unit, message.origin)
            return
        if not message.payload:
            return
        logger.debug("Input from unit %d: %r", message.unit, message.payload)
        self._inject(message.unit, message.payload)

    def _on_local_keystroke(self, text: str) -> None:
        self._inject(self._unit, text)

    def _inject(self, unit: int, text: str) -> None:
        for char in text:
            try:
                self._device.inject_input(unit, ord(char))
            except (ValueError, OSError) as e:
                # A misbehaving session must not take the device down
                logger.error("Input injection for unit %d failed: %s", unit, e)
                return
            self.bytes_injected += 1
