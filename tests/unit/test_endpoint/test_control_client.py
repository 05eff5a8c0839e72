"""Tests for the ControlClient against the real app and a mock transport."""

from __future__ import annotations

import httpx
import pytest

from multitty.bus.local import LocalBus
from multitty.context import PrimaryContext
from multitty.endpoint.client import ControlClient, ControlClientError
from multitty.endpoint.server import create_app


@pytest.fixture
def asgi_transport(hub, device, surface, launcher, manual_watch):
    context = PrimaryContext(LocalBus(hub), device, surface, launcher, watch=manual_watch)
    context.start()
    yield httpx.ASGITransport(app=create_app(context, hub))
    context.destroy()


class TestControlClient:
    @pytest.mark.asyncio
    async def test_spawn_list_close(self, asgi_transport) -> None:
        async with ControlClient("http://primary", transport=asgi_transport) as client:
            assert (await client.health())["active_count"] == 1
            assert (await client.spawn())["label"] == "TTY1"
            assert (await client.spawn(4))["unit"] == 4
            assert [s["unit"] for s in await client.sessions()] == [0, 1, 4]
            assert (await client.close(4))["status"] == "ok"
            assert (await client.close(4))["status"] == "ignored"

    @pytest.mark.asyncio
    async def test_error_detail_surfaced(self, asgi_transport) -> None:
        async with ControlClient("http://primary", transport=asgi_transport) as client:
            await client.spawn(2)
            with pytest.raises(ControlClientError) as exc_info:
                await client.spawn(2)
        assert exc_info.value.status_code == 409
        assert "Unit 2" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unreachable_primary(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with ControlClient("http://primary", transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(ControlClientError) as exc_info:
                await client.sessions()
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_non_json_error_body(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="upstream broke"))
        async with ControlClient("http://primary", transport=transport) as client:
            with pytest.raises(ControlClientError, match="upstream broke"):
                await client.health()

    @pytest.mark.asyncio
    async def test_requires_connect(self) -> None:
        with pytest.raises(ControlClientError):
            await ControlClient().sessions()
