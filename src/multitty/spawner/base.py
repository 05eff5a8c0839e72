"""Abstract interfaces for launching secondary execution contexts.

The Spawner never creates processes or windows itself. It asks a
ContextLauncher for a new context bound to a unit and gets back a
ContextHandle it can poll, wait on, or terminate.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class ContextHandle(ABC):
    """Ownership reference to a launched execution context."""

    @property
    @abstractmethod
    def unit(self) -> int:
        """The unit the context was bound to at launch."""
        ...

    @abstractmethod
    def is_alive(self) -> bool:
        """Non-blocking check whether the context still exists."""
        ...

    @abstractmethod
    def terminate(self) -> None:
        """Ask the context to go away. Safe on an already dead context."""
        ...

    @abstractmethod
    async def wait(self) -> None:
        """Return once the context has terminated."""
        ...


class ContextLauncher(ABC):
    """Creates a new execution context bound to a unit.

    The unit is the only bootstrap parameter the new context receives.
    """

    @abstractmethod
    def launch(self, unit: int) -> ContextHandle:
        """Create the context.

        Raises:
            LaunchError: If the host refused or failed to create it.
        """
        ...


class LaunchError(Exception):
    """Raised by a launcher when the context could not be created."""

    def __init__(self, message: str, unit: int | None = None) -> None:
        super().__init__(message)
        self.unit = unit


class SpawnError(Exception):
    """Raised to the spawn caller when no session could be created."""

    def __init__(self, message: str, unit: int | None = None) -> None:
        super().__init__(message)
        self.unit = unit


class CapacityError(SpawnError):
    """Every secondary unit is already in use."""


class UnitInUseError(SpawnError):
    """The explicitly requested unit is already in use."""
