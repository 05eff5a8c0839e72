"""FastAPI HTTP server for the primary context.

Hosts the broadcast hub that secondary processes publish to and stream
from, and exposes session control (list, spawn, close) to the CLI.

    GET    /health           -> {"status": "ok", ...}
    GET    /sessions         -> [{"unit": 0, "label": "TTY0", ...}, ...]
    POST   /sessions         <- {"unit": 3} (unit optional)
    DELETE /sessions/{unit}
    POST   /bus/publish      <- a bus message
    GET    /bus/subscribe    -> NDJSON stream of bus messages
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from multitty.bus.hub import DEFAULT_STREAM_QUEUE_SIZE, BroadcastHub
from multitty.context import PrimaryContext
from multitty.device.base import Device
from multitty.domain.models import MAX_UNITS, Message
from multitty.spawner.base import CapacityError, SpawnError, UnitInUseError
from multitty.surface.base import Surface

logger = logging.getLogger(__name__)

KEEPALIVE_INTERVAL = 15.0


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class SpawnRequest(BaseModel):
    unit: int | None = Field(default=None, description="Unit to bind, next free one if omitted")


class SessionInfo(BaseModel):
    unit: int
    label: str
    in_use: bool
    is_primary: bool


class HealthResponse(BaseModel):
    status: str = "ok"
    role: str = "primary"
    unit: int = 0
    origin: str = ""
    active_count: int = 0
    subscribers: int = 0


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    context: PrimaryContext,
    hub: BroadcastHub,
    device: Device | None = None,
    surface: Surface | None = None,
    stream_queue_size: int = DEFAULT_STREAM_QUEUE_SIZE,
) -> FastAPI:
    """Create the primary's control and bus relay application.

    Args:
        context: The primary context whose sessions are controlled here.
        hub: The hub the context's LocalBus is attached to.
        device: Started and stopped with the app when given.
        surface: Started and stopped with the app when given.
        stream_queue_size: Messages buffered per bus subscriber before
            further messages are dropped for that subscriber.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if device is not None:
            await device.start()
        if surface is not None:
            await surface.start()
        context.start()
        logger.info("Primary endpoint started")
        yield
        context.destroy()
        if surface is not None:
            await surface.stop()
        if device is not None:
            await device.stop()
        logger.info("Primary endpoint stopped")

    app = FastAPI(
        title="multitty primary",
        description="Session control and bus relay for the primary context",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.context = context
    app.state.hub = hub
    app.state.stream_queue_size = stream_queue_size

    @app.get("/health")
    async def health_check() -> HealthResponse:
        ctx: PrimaryContext = app.state.context
        return HealthResponse(
            unit=ctx.unit,
            origin=ctx.origin,
            active_count=ctx.active_count(),
            subscribers=app.state.hub.listener_count,
        )

    @app.get("/sessions")
    async def list_sessions() -> list[SessionInfo]:
        ctx: PrimaryContext = app.state.context
        return [SessionInfo(**s.summary()) for s in ctx.active_sessions()]

    @app.post("/sessions", status_code=201)
    async def spawn_session(request: SpawnRequest) -> SessionInfo:
        ctx: PrimaryContext = app.state.context
        try:
            session = ctx.spawn_session(request.unit)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except (CapacityError, UnitInUseError) as e:
            raise HTTPException(status_code=409, detail=str(e))
        except SpawnError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return SessionInfo(**session.summary())

    @app.delete("/sessions/{unit}")
    async def close_session(unit: int) -> dict[str, str]:
        ctx: PrimaryContext = app.state.context
        if not 0 < unit < MAX_UNITS:
            raise HTTPException(status_code=400, detail=f"Cannot close unit {unit}")
        if not ctx.close_session(unit):
            return {"status": "ignored", "reason": f"Unit {unit} is not owned by this primary"}
        return {"status": "ok", "unit": str(unit)}

    @app.post("/bus/publish")
    async def publish(message: Message) -> dict[str, str]:
        app.state.hub.publish(message)
        return {"status": "ok"}

    @app.get("/bus/subscribe")
    async def subscribe(request: Request) -> StreamingResponse:
        queue, detach = app.state.hub.open_stream(maxsize=app.state.stream_queue_size)
        return StreamingResponse(
            _stream_messages(request, queue, detach),
            media_type="application/x-ndjson",
        )

    return app


async def _stream_messages(
    request: Request,
    queue: asyncio.Queue[Message],
    detach: Callable[[], None],
) -> AsyncIterator[str]:
    """Yield hub messages as NDJSON lines until the client goes away."""
    logger.info("Bus subscriber attached")
    try:
        while True:
            try:
                message = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_INTERVAL)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    break
                yield "\n"
                continue
            yield message.model_dump_json(exclude_none=True) + "\n"
    finally:
        detach()
        logger.info("Bus subscriber detached")


async def serve(
    app: FastAPI,
    host: str,
    port: int,
    until: Awaitable[None] | None = None,
    log_level: str = "warning",
) -> None:
    """Run the endpoint server until interrupted or until ``until`` completes."""
    server = uvicorn.Server(uvicorn.Config(
        app, host=host, port=port, log_level=log_level, timeout_graceful_shutdown=2,
    ))
    if until is None:
        await server.serve()
        return
    serving = asyncio.create_task(server.serve())
    waiter = asyncio.ensure_future(until)
    await asyncio.wait({serving, waiter}, return_when=asyncio.FIRST_COMPLETED)
    server.should_exit = True
    await serving
    waiter.cancel()
