"""Abstract base class for rendering surfaces.

A surface paints output for one unit and reports local keystrokes. The
primary context binds one to unit 0; each secondary context binds one
to its own unit. Surfaces never talk to the device or the bus directly.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)

KeystrokeHandler = Callable[[str], None]


class Surface(ABC):
    """Interface for painting output and capturing local input.

    Example usage::

        async with ConsoleSurface() as surface:
            surface.on_keystroke(lambda text: surface.render(text))
            await surface.wait_closed()
    """

    def __init__(self) -> None:
        self._keystroke_handler: KeystrokeHandler | None = None

    def on_keystroke(self, handler: KeystrokeHandler | None) -> None:
        """Set the callback receiving local keystrokes (None to clear)."""
        self._keystroke_handler = handler

    def feed(self, text: str) -> None:
        """Report keystrokes typed on this surface to the installed handler."""
        if text and self._keystroke_handler is not None:
            self._keystroke_handler(text)

    @abstractmethod
    def render(self, text: str) -> None:
        """Paint output text.

        Each character is one byte of the teletype stream (code points
        0-255), so multi-byte encodings pass through untouched.
        """
        ...

    @abstractmethod
    async def start(self) -> None:
        """Acquire the display and start capturing input."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Release the display. Safe to call multiple times."""
        ...

    async def __aenter__(self) -> Surface:
        await self.start()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.stop()


class SurfaceError(Exception):
    """Raised when a surface cannot be acquired."""
