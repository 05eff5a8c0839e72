"""Liveness watches for launched contexts.

A watch reports, once, that a handle's context has gone away. The
polling strategy is the default because most hosts offer no exit
notification for the kind of handle a launcher returns; the waiting
strategy uses the process exit itself where one is available.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable

from multitty.spawner.base import ContextHandle

logger = logging.getLogger(__name__)

GoneCallback = Callable[[], None]

DEFAULT_POLL_INTERVAL = 1.0


class WatchToken:
    """Cancels one watch. Cancelling twice, or after it fired, is a no-op."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()


class LivenessWatch(ABC):
    """Strategy that detects termination of a launched context."""

    @abstractmethod
    def watch(self, handle: ContextHandle, on_gone: GoneCallback) -> WatchToken:
        """Start watching ``handle``; call ``on_gone`` once when it dies.

        Must be called with a running event loop.
        """
        ...

    @staticmethod
    def _notify(handle: ContextHandle, on_gone: GoneCallback) -> None:
        logger.debug("Context for unit %d is gone", handle.unit)
        try:
            on_gone()
        except Exception:
            logger.exception("Liveness callback for unit %d failed", handle.unit)


class PollingLivenessWatch(LivenessWatch):
    """Checks ``handle.is_alive()`` every ``interval`` seconds."""

    def __init__(self, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("Poll interval must be positive")
        self._interval = interval

    @property
    def interval(self) -> float:
        return self._interval

    def watch(self, handle: ContextHandle, on_gone: GoneCallback) -> WatchToken:
        return WatchToken(asyncio.get_running_loop().create_task(self._poll(handle, on_gone)))

    async def _poll(self, handle: ContextHandle, on_gone: GoneCallback) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if not handle.is_alive():
                self._notify(handle, on_gone)
                return


class WaitLivenessWatch(LivenessWatch):
    """Awaits the handle's own termination."""

    def watch(self, handle: ContextHandle, on_gone: GoneCallback) -> WatchToken:
        return WatchToken(asyncio.get_running_loop().create_task(self._wait(handle, on_gone)))

    async def _wait(self, handle: ContextHandle, on_gone: GoneCallback) -> None:
        await handle.wait()
        self._notify(handle, on_gone)


def create_watch(strategy: str, interval: float = DEFAULT_POLL_INTERVAL) -> LivenessWatch:
    """Build the liveness watch named in configuration."""
    if strategy == "poll":
        return PollingLivenessWatch(interval)
    if strategy == "wait":
        return WaitLivenessWatch()
    raise ValueError(f"Unknown liveness strategy: {strategy}")
