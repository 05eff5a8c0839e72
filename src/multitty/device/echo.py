"""Loopback device: every input byte comes straight back as output."""

from __future__ import annotations

import logging

from multitty.device.base import Device, DeviceError

logger = logging.getLogger(__name__)


class EchoDevice(Device):
    """Echoes input per unit, turning carriage return into CR LF."""

    def __init__(self) -> None:
        super().__init__()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True
        logger.info("Echo device started")

    async def stop(self) -> None:
        self._running = False

    def inject_input(self, unit: int, byte: int) -> None:
        self.check_input(unit, byte)
        if not self._running:
            raise DeviceError("Echo device is not running")
        self.emit(unit, byte)
        if byte == 0x0D:
            self.emit(unit, 0x0A)
