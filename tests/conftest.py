"""Shared test fixtures for the multitty test suite.

Provides an in-memory bus, fake device/launcher/handles, and a liveness
watch that fires on demand, so components can be tested in isolation
or wired together as several contexts sharing one hub.
"""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from multitty.bus.hub import BroadcastHub
from multitty.bus.local import LocalBus
from multitty.device.base import Device
from multitty.domain.models import ContextIdentity, Message, MessageKind, Role
from multitty.session.channel import SessionChannel
from multitty.session.registry import SessionRegistry
from multitty.spawner.base import ContextHandle, ContextLauncher, LaunchError
from multitty.spawner.liveness import LivenessWatch
from multitty.surface.memory import MemorySurface


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeDevice(Device):
    """Records injected input; output is produced with ``emit()``."""

    def __init__(self) -> None:
        super().__init__()
        self.injected: list[tuple[int, int]] = []
        self.fail_on: int | None = None

    def inject_input(self, unit: int, byte: int) -> None:
        self.check_input(unit, byte)
        if byte == self.fail_on:
            raise OSError("device refused byte")
        self.injected.append((unit, byte))

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass


class FakeHandle(ContextHandle):
    def __init__(self, unit: int) -> None:
        self._unit = unit
        self.alive = True
        self.terminated = False

    @property
    def unit(self) -> int:
        return self._unit

    def is_alive(self) -> bool:
        return self.alive

    def terminate(self) -> None:
        self.terminated = True
        self.alive = False

    async def wait(self) -> None:
        while self.alive:
            await asyncio.sleep(0.005)


class FakeLauncher(ContextLauncher):
    """Hands out FakeHandles; refuses units listed in ``blocked``."""

    def __init__(self) -> None:
        self.launched: list[FakeHandle] = []
        self.blocked: set[int] = set()

    def launch(self, unit: int) -> FakeHandle:
        if unit in self.blocked:
            raise LaunchError(f"blocked unit {unit}", unit=unit)
        handle = FakeHandle(unit)
        self.launched.append(handle)
        return handle


class ManualToken:
    def __init__(self) -> None:
        self.cancelled = False

    @property
    def active(self) -> bool:
        return not self.cancelled

    def cancel(self) -> None:
        self.cancelled = True


class ManualWatch(LivenessWatch):
    """Liveness watch whose callbacks are fired by the test."""

    def __init__(self) -> None:
        self.watches: list[tuple[ContextHandle, Callable[[], None], ManualToken]] = []

    def watch(self, handle: ContextHandle, on_gone: Callable[[], None]) -> ManualToken:
        token = ManualToken()
        self.watches.append((handle, on_gone, token))
        return token

    def fire(self, handle: ContextHandle) -> None:
        for watched, on_gone, token in self.watches:
            if watched is handle and not token.cancelled:
                on_gone()


class BusRecorder:
    """Captures every message that crosses a hub."""

    def __init__(self, hub: BroadcastHub) -> None:
        self.messages: list[Message] = []
        hub.attach(self.messages.append)

    def kinds(self) -> list[MessageKind]:
        return [m.kind for m in self.messages]

    def of_kind(self, kind: MessageKind) -> list[Message]:
        return [m for m in self.messages if m.kind is kind]

    def clear(self) -> None:
        self.messages.clear()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture
def recorder(hub: BroadcastHub) -> BusRecorder:
    return BusRecorder(hub)


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def surface() -> MemorySurface:
    return MemorySurface()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def manual_watch() -> ManualWatch:
    return ManualWatch()


@pytest.fixture
def primary_channel(hub: BroadcastHub) -> SessionChannel:
    return SessionChannel(LocalBus(hub), Role.PRIMARY, ContextIdentity("primary"))


@pytest.fixture
def primary_registry(primary_channel: SessionChannel) -> SessionRegistry:
    return SessionRegistry(primary_channel)


@pytest.fixture
def make_secondary_channel(hub: BroadcastHub) -> Callable[[str], SessionChannel]:
    def make(origin: str) -> SessionChannel:
        return SessionChannel(LocalBus(hub), Role.SECONDARY, ContextIdentity(origin))

    return make


@pytest.fixture
def make_handle() -> Callable[[int], FakeHandle]:
    return FakeHandle
