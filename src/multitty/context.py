"""Execution contexts: the role controller.

A process is either the primary context (owns the device, unit 0, runs
the router and the spawner) or a secondary context (one unit, runs a
proxy). The role is chosen when the context is built and never changes.
"""

from __future__ import annotations

import logging

from multitty.bus.base import Bus
from multitty.device.base import Device
from multitty.domain.models import PRIMARY_UNIT, ContextIdentity, Role, Session
from multitty.session.channel import SessionChannel
from multitty.session.proxy import SessionProxy
from multitty.session.registry import SessionRegistry
from multitty.session.router import IORouter
from multitty.spawner.base import ContextLauncher
from multitty.spawner.liveness import LivenessWatch, PollingLivenessWatch
from multitty.spawner.spawner import Spawner
from multitty.surface.base import Surface

logger = logging.getLogger(__name__)


class PrimaryContext:
    """The device-owning context, bound to unit 0."""

    role = Role.PRIMARY

    def __init__(
        self,
        bus: Bus,
        device: Device,
        surface: Surface,
        launcher: ContextLauncher,
        watch: LivenessWatch | None = None,
        identity: ContextIdentity | None = None,
    ) -> None:
        self.channel = SessionChannel(bus, Role.PRIMARY, identity)
        self.registry = SessionRegistry(self.channel)
        self.router = IORouter(self.channel, device, surface)
        self.spawner = Spawner(self.registry, launcher, watch or PollingLivenessWatch())
        self._started = False

    @property
    def unit(self) -> int:
        return PRIMARY_UNIT

    @property
    def origin(self) -> str:
        return self.channel.origin

    def start(self) -> None:
        if self._started:
            return
        self.registry.register(PRIMARY_UNIT)
        self.router.attach()
        self._started = True
        logger.info("Primary context started (%s)", self.origin)

    def spawn_session(self, unit: int | None = None) -> Session:
        return self.spawner.spawn(unit)

    def close_session(self, unit: int) -> bool:
        return self.spawner.close(unit)

    def active_sessions(self) -> list[Session]:
        return self.registry.active_sessions()

    def active_count(self) -> int:
        return self.registry.active_count()

    def session_info(self, unit: int) -> Session | None:
        return self.registry.get(unit)

    def is_unit_available(self, unit: int) -> bool:
        return self.registry.is_available(unit)

    def destroy(self) -> None:
        """Close every secondary this context launched and detach from the bus."""
        self.spawner.close_all()
        self.router.detach()
        self.registry.close()
        self.channel.close()
        self._started = False
        logger.info("Primary context destroyed")


class SecondaryContext:
    """A context proxying one unit's I/O over the bus."""

    role = Role.SECONDARY

    def __init__(
        self,
        bus: Bus,
        surface: Surface,
        unit: int,
        identity: ContextIdentity | None = None,
    ) -> None:
        if unit == PRIMARY_UNIT:
            raise ValueError("A secondary context cannot be bound to unit 0")
        self.channel = SessionChannel(bus, Role.SECONDARY, identity)
        self.registry = SessionRegistry(self.channel)
        self.proxy = SessionProxy(self.channel, self.registry, surface, unit)

    @property
    def unit(self) -> int:
        return self.proxy.unit

    @property
    def origin(self) -> str:
        return self.channel.origin

    def start(self) -> None:
        self.proxy.start()
        logger.info("Secondary context started for unit %d (%s)", self.unit, self.origin)

    def destroy(self) -> None:
        self.proxy.stop()
        self.registry.close()
        self.channel.close()
        logger.info("Secondary context destroyed")
