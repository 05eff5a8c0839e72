"""Abstract base class for the multi-unit teletype device.

The device is the one resource owned exclusively by the primary
context. It addresses output per unit through an output handler and
accepts input per unit through ``inject_input()``. Everything behind
that interface (a CPU emulator, a set of shells, ...) is opaque.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from multitty.domain.models import MAX_UNITS

logger = logging.getLogger(__name__)

OutputHandler = Callable[[int, int], None]


class Device(ABC):
    """Interface for a device serving up to MAX_UNITS terminal units.

    Example usage::

        async with EchoDevice() as device:
            device.set_output_handler(lambda unit, byte: print(unit, chr(byte)))
            device.inject_input(2, ord("A"))
    """

    def __init__(self) -> None:
        self._output_handler: OutputHandler | None = None

    def set_output_handler(self, handler: OutputHandler | None) -> None:
        """Install the callback invoked for every output byte.

        Passing None removes it; output produced meanwhile is discarded.
        """
        self._output_handler = handler

    def emit(self, unit: int, byte: int) -> None:
        """Deliver one output byte for ``unit`` to the installed handler."""
        if self._output_handler is not None:
            self._output_handler(unit, byte)

    @abstractmethod
    def inject_input(self, unit: int, byte: int) -> None:
        """Feed one input byte to the device on behalf of ``unit``.

        Raises:
            ValueError: If the unit or byte is out of range.
            DeviceError: If the device cannot accept input.
        """
        ...

    @abstractmethod
    async def start(self) -> None:
        """Bring the device up."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Shut the device down. Safe to call multiple times."""
        ...

    @staticmethod
    def check_input(unit: int, byte: int) -> None:
        if not 0 <= unit < MAX_UNITS:
            raise ValueError(f"Invalid unit {unit}")
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"Input byte out of range: {byte}")

    async def __aenter__(self) -> Device:
        await self.start()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.stop()


class DeviceError(OSError):
    """Raised when the device cannot service a request."""
