"""Tests for the primary's I/O router."""

from __future__ import annotations

import pytest

from multitty.bus.hub import BroadcastHub
from multitty.bus.local import LocalBus
from multitty.domain.models import ContextIdentity, Message, MessageKind, Role
from multitty.session.channel import SessionChannel
from multitty.session.router import IORouter
from multitty.surface.memory import MemorySurface


@pytest.fixture
def router(primary_channel, device, surface) -> IORouter:
    router = IORouter(primary_channel, device, surface)
    router.attach()
    return router


class TestOutputFanOut:
    def test_own_unit_output_rendered_locally(self, router: IORouter, device, surface, recorder) -> None:
        device.emit(0, ord("$"))
        assert surface.content == "$"
        assert recorder.messages == []

    def test_secondary_output_teed_onto_bus(self, router: IORouter, device, surface, recorder) -> None:
        device.emit(2, 0x41)
        outputs = recorder.of_kind(MessageKind.OUTPUT)
        assert [(m.unit, m.payload) for m in outputs] == [(2, "A")]
        assert surface.content == ""
        assert router.bytes_forwarded == 1

    def test_only_matching_proxy_renders(self, router: IORouter, device, hub: BroadcastHub) -> None:
        from multitty.session.proxy import SessionProxy
        from multitty.session.registry import SessionRegistry

        surfaces = {}
        for unit in (2, 3):
            channel = SessionChannel(LocalBus(hub), Role.SECONDARY, ContextIdentity(f"s{unit}"))
            surfaces[unit] = MemorySurface()
            SessionProxy(channel, SessionRegistry(channel), surfaces[unit], unit).start()

        device.emit(2, 0x41)
        assert surfaces[2].content == "A"
        assert surfaces[3].content == ""

    def test_output_for_unbound_unit_still_published(self, router: IORouter, device, recorder) -> None:
        device.emit(7, ord("z"))
        assert [m.unit for m in recorder.of_kind(MessageKind.OUTPUT)] == [7]

    def test_invalid_unit_output_dropped(self, router: IORouter, device, recorder) -> None:
        device.emit(9, ord("z"))
        assert recorder.messages == []

    def test_full_byte_range_survives(self, router: IORouter, device, recorder) -> None:
        device.emit(1, 0xFF)
        assert recorder.messages[0].payload == "\xff"


class TestInputInjection:
    def test_input_injected_in_order(self, router: IORouter, device, make_secondary_channel) -> None:
        make_secondary_channel("s").send(MessageKind.INPUT, 4, "ls\r")
        assert device.injected == [(4, ord("l")), (4, ord("s")), (4, 0x0D)]
        assert router.bytes_injected == 3

    def test_local_keystrokes_go_to_own_unit(self, router: IORouter, device, surface) -> None:
        surface.feed("x")
        assert device.injected == [(0, ord("x"))]

    def test_invalid_unit_input_dropped(self, router: IORouter, device, hub: BroadcastHub) -> None:
        hub.publish(Message(kind=MessageKind.INPUT, unit=9, payload="x", origin="peer", timestamp=0))
        hub.publish(Message(kind=MessageKind.INPUT, unit=2, origin="peer", timestamp=0))
        assert device.injected == []

    def test_device_failure_is_contained(self, router: IORouter, device, make_secondary_channel) -> None:
        device.fail_on = ord("s")
        sender = make_secondary_channel("s")
        sender.send(MessageKind.INPUT, 3, "ls")
        assert device.injected == [(3, ord("l"))]
        device.fail_on = None
        sender.send(MessageKind.INPUT, 3, "k")
        assert device.injected[-1] == (3, ord("k"))

    def test_non_latin1_character_rejected(self, router: IORouter, device, make_secondary_channel) -> None:
        make_secondary_channel("s").send(MessageKind.INPUT, 3, "€")
        assert device.injected == []


class TestLifecycle:
    def test_requires_primary_channel(self, make_secondary_channel, device, surface) -> None:
        with pytest.raises(ValueError):
            IORouter(make_secondary_channel("s"), device, surface)

    def test_detach(self, router: IORouter, device, surface, recorder, make_secondary_channel) -> None:
        router.detach()
        assert not router.is_attached
        device.emit(2, ord("A"))
        surface.feed("x")
        make_secondary_channel("s").send(MessageKind.INPUT, 2, "y")
        assert recorder.of_kind(MessageKind.OUTPUT) == []
        assert device.injected == []
