"""Headless surface that keeps rendered output in a scrollback buffer."""

from __future__ import annotations

from multitty.surface.base import Surface


class MemorySurface(Surface):
    """Accumulates rendered text. Keystrokes are supplied through ``feed()``."""

    def __init__(self, scrollback: int = 64 * 1024) -> None:
        super().__init__()
        self._scrollback = scrollback
        self._buffer = ""
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def content(self) -> str:
        return self._buffer

    def render(self, text: str) -> None:
        self._buffer += text
        if len(self._buffer) > self._scrollback:
            self._buffer = self._buffer[-self._scrollback:]

    def clear(self) -> None:
        self._buffer = ""

    async def start(self) -> None:
        self._active = True

    async def stop(self) -> None:
        self._active = False
