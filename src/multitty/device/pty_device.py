"""Pseudo-terminal device: one login shell per terminal unit.

Stands in for the emulated machine. Each unit gets its own shell
process behind a pty, started the first time the unit is used, so the
device behaves like a small timesharing host with several serial lines.
"""

from __future__ import annotations

import asyncio
import fcntl
import logging
import os
import pty
import signal
import struct
import termios
from dataclasses import dataclass

from multitty.device.base import Device, DeviceError
from multitty.domain.models import PRIMARY_UNIT

logger = logging.getLogger(__name__)


@dataclass
class _UnitLine:
    unit: int
    pid: int
    master_fd: int


class PtyDevice(Device):
    """Runs a shell per unit and streams its output byte by byte."""

    def __init__(
        self,
        shell_command: str = "/bin/sh",
        rows: int = 24,
        cols: int = 80,
        term: str = "xterm-256color",
    ) -> None:
        super().__init__()
        self._shell_command = shell_command
        self._rows = rows
        self._cols = cols
        self._term = term
        self._lines: dict[int, _UnitLine] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_running(self) -> bool:
        return self._loop is not None

    def active_lines(self) -> list[int]:
        return sorted(self._lines)

    async def start(self) -> None:
        """Start the device and the primary unit's shell."""
        self._loop = asyncio.get_running_loop()
        self._open_line(PRIMARY_UNIT)

    async def stop(self) -> None:
        """Hang up every line: SIGTERM, then SIGKILL for stragglers."""
        lines = list(self._lines.values())
        for line in lines:
            self._close_fd(line)
            try:
                os.kill(line.pid, signal.SIGTERM)
            except ProcessLookupError:
                pass
        if lines:
            await asyncio.sleep(0.5)
        for line in lines:
            self._reap(line.pid)
        self._lines.clear()
        self._loop = None
        logger.info("Pty device stopped")

    def inject_input(self, unit: int, byte: int) -> None:
        self.check_input(unit, byte)
        if self._loop is None:
            raise DeviceError("Pty device is not running")
        line = self._lines.get(unit) or self._open_line(unit)
        try:
            os.write(line.master_fd, bytes([byte]))
        except OSError as e:
            raise DeviceError(f"Failed to write to unit {unit}: {e}") from e

    def _open_line(self, unit: int) -> _UnitLine:
        if self._loop is None:
            raise DeviceError("Pty device is not running")
        master_fd, slave_fd = pty.openpty()

        winsize = struct.pack("HHHH", self._rows, self._cols, 0, 0)
        fcntl.ioctl(slave_fd, termios.TIOCSWINSZ, winsize)

        env = os.environ.copy()
        env["TERM"] = self._term
        env["COLUMNS"] = str(self._cols)
        env["LINES"] = str(self._rows)
        env["MULTITTY_UNIT"] = str(unit)

        pid = os.fork()
        if pid == 0:
            # Child process
            os.close(master_fd)
            os.setsid()
            fcntl.ioctl(slave_fd, termios.TIOCSCTTY, 0)
            os.dup2(slave_fd, 0)
            os.dup2(slave_fd, 1)
            os.dup2(slave_fd, 2)
            if slave_fd > 2:
                os.close(slave_fd)
            os.execvpe(self._shell_command, [self._shell_command], env)

        os.close(slave_fd)
        flags = fcntl.fcntl(master_fd, fcntl.F_GETFL)
        fcntl.fcntl(master_fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)

        line = _UnitLine(unit=unit, pid=pid, master_fd=master_fd)
        self._lines[unit] = line
        self._loop.add_reader(master_fd, self._on_readable, unit)
        logger.info("Started %s on unit %d (pid=%d, %dx%d)",
                    self._shell_command, unit, pid, self._cols, self._rows)
        return line

    def _on_readable(self, unit: int) -> None:
        line = self._lines.get(unit)
        if line is None:
            return
        try:
            data = os.read(line.master_fd, 4096)
        except BlockingIOError:
            return
        except OSError:
            # EIO once the shell has exited
            data = b""
        if not data:
            logger.info("Shell on unit %d exited", unit)
            self._close_fd(line)
            self._reap(line.pid)
            del self._lines[unit]
            return
        for byte in data:
            self.emit(unit, byte)

    def _close_fd(self, line: _UnitLine) -> None:
        if self._loop is not None:
            self._loop.remove_reader(line.master_fd)
        try:
            os.close(line.master_fd)
        except OSError:
            pass

    @staticmethod
    def _reap(pid: int) -> None:
        try:
            done, _ = os.waitpid(pid, os.WNOHANG)
            if done == 0:
                os.kill(pid, signal.SIGKILL)
                os.waitpid(pid, 0)
        except (ProcessLookupError, ChildProcessError):
            pass
