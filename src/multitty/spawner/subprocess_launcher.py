"""Launches secondary consoles as child processes.

Each secondary runs ``multitty secondary --unit N`` inside a new
terminal window opened by the configured terminal command (for example
``xterm -T TTY3 -e``). The window's process is the handle: when the
user closes the window, the process exits and the liveness watch
notices.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from pathlib import Path

from multitty.domain.models import unit_label
from multitty.spawner.base import ContextHandle, ContextLauncher, LaunchError

logger = logging.getLogger(__name__)

DEFAULT_TERMINAL_COMMAND = ["xterm", "-T", "{label}", "-e"]


class SubprocessHandle(ContextHandle):
    """Handle over a ``subprocess.Popen`` child."""

    def __init__(self, unit: int, process: subprocess.Popen) -> None:
        self._unit = unit
        self._process = process

    @property
    def unit(self) -> int:
        return self._unit

    @property
    def pid(self) -> int:
        return self._process.pid

    def is_alive(self) -> bool:
        return self._process.poll() is None

    def terminate(self) -> None:
        if not self.is_alive():
            return
        try:
            self._process.terminate()
        except ProcessLookupError:
            pass

    async def wait(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._process.wait)

    def __repr__(self) -> str:
        return f"SubprocessHandle(unit={self._unit}, pid={self._process.pid})"


class SubprocessLauncher(ContextLauncher):
    """Starts a secondary console process for a unit."""

    def __init__(
        self,
        bus_url: str,
        terminal_command: list[str] | None = None,
        config_path: Path | str | None = None,
        python: str | None = None,
    ) -> None:
        self._bus_url = bus_url
        self._terminal_command = (
            list(DEFAULT_TERMINAL_COMMAND) if terminal_command is None else list(terminal_command)
        )
        self._config_path = str(config_path) if config_path else None
        self._python = python or sys.executable

    def build_command(self, unit: int) -> list[str]:
        """Full argv for the secondary bound to ``unit``."""
        fields = {"unit": unit, "label": unit_label(unit)}
        argv = [part.format(**fields) for part in self._terminal_command]
        argv += [self._python, "-m", "multitty.cli"]
        if self._config_path:
            argv += ["--config", self._config_path]
        argv += ["secondary", "--unit", str(unit), "--bus-url", self._bus_url]
        return argv

    def launch(self, unit: int) -> SubprocessHandle:
        argv = self.build_command(unit)
        logger.debug("Launching unit %d: %s", unit, " ".join(argv))
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise LaunchError(f"Failed to launch {argv[0]!r} for unit {unit}: {e}", unit=unit) from e
        logger.info("Launched %s (pid=%d)", unit_label(unit), process.pid)
        return SubprocessHandle(unit, process)
