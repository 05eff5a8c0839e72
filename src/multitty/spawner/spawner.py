"""Spawner: allocates units, launches bound contexts, supervises them.

Lifecycle of a secondary unit as seen from here::

    FREE --spawn ok--> ACTIVE --close | context gone--> FREE
    FREE --spawn failure--> FREE
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from multitty.domain.models import MAX_UNITS, PRIMARY_UNIT, Session, is_valid_unit, unit_label
from multitty.session.registry import SessionRegistry
from multitty.spawner.base import (
    CapacityError,
    ContextHandle,
    ContextLauncher,
    LaunchError,
    SpawnError,
    UnitInUseError,
)
from multitty.spawner.liveness import LivenessWatch, WatchToken

logger = logging.getLogger(__name__)


@dataclass
class _Supervised:
    handle: ContextHandle
    token: WatchToken


class Spawner:
    """Creates and supervises secondary sessions for the primary context."""

    def __init__(
        self,
        registry: SessionRegistry,
        launcher: ContextLauncher,
        watch: LivenessWatch,
    ) -> None:
        self._registry = registry
        self._launcher = launcher
        self._watch = watch
        self._supervised: dict[int, _Supervised] = {}

    @property
    def owned_units(self) -> list[int]:
        return sorted(self._supervised)

    def next_free_unit(self) -> int | None:
        """Lowest secondary unit that is free in the local view."""
        for unit in range(1, MAX_UNITS):
            if self._registry.is_available(unit) and not self._has_live_handle(unit):
                return unit
        return None

    def spawn(self, unit: int | None = None) -> Session:
        """Launch a new context bound to ``unit`` (or the next free one).

        Raises:
            CapacityError: No secondary unit is free.
            UnitInUseError: The requested unit is already in use.
            ValueError: The requested unit is invalid or the primary's.
            SpawnError: The launcher could not create the context.
        """
        target = unit if unit is not None else self.next_free_unit()
        if target is None:
            logger.error("No available terminal units")
            raise CapacityError(f"Maximum number of terminals ({MAX_UNITS}) reached")
        if not is_valid_unit(target) or target == PRIMARY_UNIT:
            raise ValueError(f"Cannot spawn unit {target}: must be in 1..{MAX_UNITS - 1}")

        # A peer may have announced the unit free while our context still runs
        if self._has_live_handle(target):
            logger.warning("Unit %d still has a live session", target)
            raise UnitInUseError(f"Unit {target} is already in use", unit=target)

        # Reserve before launching so a second spawn cannot pick the same unit
        if not self._registry.reserve(target):
            logger.warning("Unit %d already in use", target)
            raise UnitInUseError(f"Unit {target} is already in use", unit=target)

        stale = self._supervised.pop(target, None)
        if stale is not None:
            logger.debug("Dropping exited handle for unit %d", target)
            stale.token.cancel()

        try:
            handle = self._launcher.launch(target)
        except LaunchError as e:
            self._registry.release(target)
            logger.error("Failed to launch %s: %s", unit_label(target), e)
            raise SpawnError(f"Failed to open new terminal for unit {target}: {e}", unit=target) from e

        token = self._watch.watch(handle, lambda: self._on_gone(target, handle))
        self._supervised[target] = _Supervised(handle=handle, token=token)
        self._registry.set_handle(target, handle)
        logger.info("Spawned terminal unit %d", target)
        return self._registry.get(target)

    def close(self, unit: int) -> bool:
        """Terminate the context bound to ``unit`` and free the unit.

        Returns False if this spawner does not own ``unit``.
        """
        if unit == PRIMARY_UNIT:
            logger.warning("Cannot close primary terminal")
            return False
        supervised = self._supervised.get(unit)
        if supervised is None:
            logger.warning("Unit %d is not owned by this spawner", unit)
            return False
        logger.info("Closing terminal unit %d", unit)
        supervised.handle.terminate()
        self._release(unit, supervised.handle)
        return True

    def close_all(self) -> None:
        for unit in self.owned_units:
            self.close(unit)

    def _on_gone(self, unit: int, handle: ContextHandle) -> None:
        supervised = self._supervised.get(unit)
        if supervised is None or supervised.handle is not handle:
            return
        logger.info("Terminal unit %d went away", unit)
        self._release(unit, handle)

    def _has_live_handle(self, unit: int) -> bool:
        supervised = self._supervised.get(unit)
        return supervised is not None and supervised.handle.is_alive()

    def _release(self, unit: int, handle: ContextHandle) -> None:
        supervised = self._supervised.get(unit)
        if supervised is not None and supervised.handle is handle:
            del self._supervised[unit]
            supervised.token.cancel()
        session = self._registry.get(unit)
        # Once a peer announced the unit free, it may already belong to someone else
        if session is None or session.handle is not handle:
            logger.debug("Unit %d no longer bound to this handle, not unregistering", unit)
            return
        self._registry.unregister(unit)
        self._registry.set_handle(unit, None)
