"""Tests for the HTTP bus backend using httpx's mock transport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from multitty.bus.base import BusError
from multitty.bus.http_backend import HttpBus
from multitty.domain.models import Message, MessageKind


def _line(unit: int, kind: str = "output", payload: str = "A") -> str:
    return json.dumps({"kind": kind, "unit": unit, "payload": payload, "origin": "primary", "timestamp": 1})


class RelayStub:
    """Minimal stand-in for the primary's relay routes."""

    def __init__(self, stream_lines: list[str] | None = None, stream_status: int = 200) -> None:
        self.published: list[dict] = []
        self.stream_lines = stream_lines or []
        self.stream_status = stream_status
        self.stream_calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        if request.url.path == "/bus/publish":
            self.published.append(json.loads(request.content))
            return httpx.Response(200, json={"status": "ok"})
        if request.url.path == "/bus/subscribe":
            self.stream_calls += 1
            if self.stream_status != 200:
                return httpx.Response(self.stream_status)
            # Only the first connection carries frames
            lines = self.stream_lines if self.stream_calls == 1 else []
            body = "".join(line + "\n" for line in lines)
            return httpx.Response(200, content=body.encode())
        return httpx.Response(404)


async def _wait_for(predicate, timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


class TestHttpBus:
    @pytest.mark.asyncio
    async def test_publish_order_preserved(self) -> None:
        relay = RelayStub()
        bus = HttpBus(url="http://relay", retry_delay=0.01, transport=httpx.MockTransport(relay))
        await bus.start()
        for ts in range(5):
            bus.publish(Message(kind=MessageKind.INPUT, unit=2, payload=str(ts), origin="s", timestamp=ts))
        await bus.close()

        assert [p["payload"] for p in relay.published] == ["0", "1", "2", "3", "4"]
        assert all(p["kind"] == "input" for p in relay.published)

    @pytest.mark.asyncio
    async def test_receives_stream_and_skips_malformed_frames(self) -> None:
        relay = RelayStub(stream_lines=[_line(2, payload="h"), "not json", "", _line(3, payload="i")])
        bus = HttpBus(url="http://relay", retry_delay=0.01, transport=httpx.MockTransport(relay))
        seen: list[Message] = []
        bus.subscribe(seen.append)
        await bus.start()
        try:
            await _wait_for(lambda: len(seen) >= 2)
        finally:
            await bus.close()

        assert [(m.unit, m.payload) for m in seen] == [(2, "h"), (3, "i")]

    @pytest.mark.asyncio
    async def test_unreachable_relay_raises_bus_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        bus = HttpBus(url="http://relay", transport=httpx.MockTransport(refuse))
        with pytest.raises(BusError) as exc_info:
            await bus.start()
        assert exc_info.value.transport == "http"
        assert not bus.is_connected

    @pytest.mark.asyncio
    async def test_stream_that_never_opens_raises_bus_error(self) -> None:
        relay = RelayStub(stream_status=503)
        bus = HttpBus(url="http://relay", timeout=0.2, retry_delay=0.01, transport=httpx.MockTransport(relay))
        with pytest.raises(BusError):
            await bus.start()
        assert not bus.is_connected
        assert relay.stream_calls >= 1

    @pytest.mark.asyncio
    async def test_publish_while_disconnected_is_dropped(self) -> None:
        bus = HttpBus(url="http://relay/")
        assert bus.url == "http://relay"
        bus.publish(Message(kind=MessageKind.PING, unit=-1, origin="s", timestamp=0))
        await bus.close()
