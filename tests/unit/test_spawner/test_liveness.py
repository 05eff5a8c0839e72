"""Tests for the liveness watch strategies."""

from __future__ import annotations

import asyncio

import pytest

from multitty.domain.models import MessageKind
from multitty.spawner.liveness import (
    PollingLivenessWatch,
    WaitLivenessWatch,
    create_watch,
)
from multitty.spawner.spawner import Spawner


async def _settle(predicate, timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


class TestPollingLivenessWatch:
    @pytest.mark.asyncio
    async def test_reports_dead_context_once(self, make_handle) -> None:
        handle = make_handle(2)
        calls: list[int] = []
        token = PollingLivenessWatch(0.01).watch(handle, lambda: calls.append(handle.unit))
        await asyncio.sleep(0.03)
        assert calls == []

        handle.alive = False
        await _settle(lambda: calls)
        await asyncio.sleep(0.03)
        assert calls == [2]
        assert not token.active

    @pytest.mark.asyncio
    async def test_cancelled_watch_never_fires(self, make_handle) -> None:
        handle = make_handle(2)
        calls: list[int] = []
        token = PollingLivenessWatch(0.01).watch(handle, lambda: calls.append(1))
        token.cancel()
        token.cancel()
        handle.alive = False
        await asyncio.sleep(0.05)
        assert calls == []
        assert not token.active

    @pytest.mark.asyncio
    async def test_callback_failure_is_contained(self, make_handle) -> None:
        handle = make_handle(1)
        handle.alive = False

        def explode() -> None:
            raise RuntimeError("boom")

        token = PollingLivenessWatch(0.01).watch(handle, explode)
        await _settle(lambda: not token.active)

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            PollingLivenessWatch(0)


class TestWaitLivenessWatch:
    @pytest.mark.asyncio
    async def test_fires_when_wait_returns(self, make_handle) -> None:
        handle = make_handle(4)
        calls: list[int] = []
        WaitLivenessWatch().watch(handle, lambda: calls.append(4))
        await asyncio.sleep(0.02)
        assert calls == []
        handle.alive = False
        await _settle(lambda: calls)


class TestCreateWatch:
    def test_strategies(self) -> None:
        poll = create_watch("poll", 0.5)
        assert isinstance(poll, PollingLivenessWatch)
        assert poll.interval == 0.5
        assert isinstance(create_watch("wait"), WaitLivenessWatch)
        with pytest.raises(ValueError):
            create_watch("inotify")


class TestUngracefulExit:
    @pytest.mark.asyncio
    async def test_killed_context_frees_unit(self, primary_registry, recorder, launcher) -> None:
        spawner = Spawner(primary_registry, launcher, PollingLivenessWatch(0.01))
        spawner.spawn(3)

        # Killed without announcing anything on the bus
        launcher.launched[0].alive = False
        await _settle(lambda: primary_registry.is_available(3))

        assert [m.unit for m in recorder.of_kind(MessageKind.UNREGISTER)] == [3]
        assert spawner.owned_units == []
