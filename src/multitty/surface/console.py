"""Console surface: the controlling terminal in raw mode.

Output bytes are written to stdout unchanged; every byte read from
stdin is reported as a keystroke, except the detach key, which closes
the surface the way ``Ctrl-]`` leaves a telnet session.
"""

from __future__ import annotations

import asyncio
import logging
import os
import select
import sys
import termios
import tty

from multitty.surface.base import Surface, SurfaceError

logger = logging.getLogger(__name__)

DEFAULT_DETACH_KEY = "\x1d"  # Ctrl-]

# Seconds to wait for a full stdout (e.g. paused with Ctrl-S) before dropping output
RENDER_WRITE_TIMEOUT = 1.0


class ConsoleSurface(Surface):
    """Binds a unit to the process's own terminal."""

    def __init__(
        self,
        stdin_fd: int | None = None,
        stdout_fd: int | None = None,
        detach_key: str = DEFAULT_DETACH_KEY,
        banner: str | None = None,
    ) -> None:
        super().__init__()
        self._stdin_fd = sys.stdin.fileno() if stdin_fd is None else stdin_fd
        self._stdout_fd = sys.stdout.fileno() if stdout_fd is None else stdout_fd
        self._detach_key = detach_key
        self._banner = banner
        self._saved_attrs: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = asyncio.Event()

    @property
    def is_active(self) -> bool:
        return self._loop is not None

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._closed.clear()
        if os.isatty(self._stdin_fd):
            try:
                self._saved_attrs = termios.tcgetattr(self._stdin_fd)
                tty.setraw(self._stdin_fd)
            except termios.error as e:
                raise SurfaceError(f"Cannot put terminal in raw mode: {e}") from e
        self._loop.add_reader(self._stdin_fd, self._on_stdin)
        if self._banner:
            self.render(self._banner + "\r\n")

    async def stop(self) -> None:
        if self._loop is None:
            return
        self._loop.remove_reader(self._stdin_fd)
        if self._saved_attrs is not None:
            termios.tcsetattr(self._stdin_fd, termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None
        self._loop = None
        self._closed.set()

    async def wait_closed(self) -> None:
        """Block until the detach key is pressed or stdin reaches EOF."""
        await self._closed.wait()

    def render(self, text: str) -> None:
        data = text.encode("latin-1", errors="replace")
        while data:
            try:
                written = os.write(self._stdout_fd, data)
            except BlockingIOError:
                _, writable, _ = select.select([], [self._stdout_fd], [], RENDER_WRITE_TIMEOUT)
                if not writable:
                    logger.warning("Console not writable, dropped %d output bytes", len(data))
                    return
                continue
            data = data[written:]

    def _on_stdin(self) -> None:
        try:
            data = os.read(self._stdin_fd, 1024)
        except BlockingIOError:
            return
        except OSError as e:
            logger.warning("Console read failed: %s", e)
            data = b""
        if not data:
            self._detach()
            return
        text = data.decode("latin-1")
        if self._detach_key and self._detach_key in text:
            self.feed(text.split(self._detach_key, 1)[0])
            self._detach()
            return
        self.feed(text)

    def _detach(self) -> None:
        if self._loop is not None:
            self._loop.remove_reader(self._stdin_fd)
        self._closed.set()
