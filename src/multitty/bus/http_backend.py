"""HTTP bus backend.

Connects a secondary process to the hub hosted by the primary's
endpoint server: messages are POSTed to ``/bus/publish`` and received
as an NDJSON stream from ``/bus/subscribe``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import httpx
from pydantic import ValidationError

from multitty.bus.base import Bus, BusError, MessageHandler, dispatch
from multitty.domain.models import Message

logger = logging.getLogger(__name__)


class HttpBus(Bus):
    """Bus endpoint that relays through the primary's HTTP server.

    ``publish()`` only enqueues; a single sender task drains the queue so
    this context's messages reach the hub in publish order.
    """

    def __init__(
        self,
        url: str = "http://127.0.0.1:8750",
        timeout: float = 5.0,
        retry_delay: float = 1.0,
        flush_timeout: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._timeout = timeout
        self._retry_delay = retry_delay
        self._flush_timeout = flush_timeout
        self._transport = transport
        self._handlers: list[MessageHandler] = []
        self._client: httpx.AsyncClient | None = None
        self._outbox: asyncio.Queue[Message] | None = None
        self._sender_task: asyncio.Task[None] | None = None
        self._receiver_task: asyncio.Task[None] | None = None
        self._stream_ready: asyncio.Event | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def start(self) -> None:
        """Verify the relay is reachable and open the subscription stream."""
        self._client = httpx.AsyncClient(
            base_url=self._url, timeout=self._timeout, transport=self._transport,
        )
        try:
            resp = await self._client.get("/health")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            await self._client.aclose()
            self._client = None
            raise BusError(f"Failed to reach bus relay at {self._url}: {e}", transport="http") from e

        self._outbox = asyncio.Queue()
        self._stream_ready = asyncio.Event()
        self._sender_task = asyncio.create_task(self._send_loop(self._client, self._outbox))
        self._receiver_task = asyncio.create_task(self._receive_loop(self._client, self._stream_ready))
        try:
            await asyncio.wait_for(self._stream_ready.wait(), timeout=self._timeout)
        except asyncio.TimeoutError:
            await self.close()
            raise BusError(f"Subscription to {self._url} did not open", transport="http")
        logger.info("Connected to bus relay at %s", self._url)

    async def close(self) -> None:
        """Flush pending messages (best effort) and disconnect."""
        if self._client is None:
            return
        if self._outbox is not None and self._sender_task is not None and not self._sender_task.done():
            try:
                await asyncio.wait_for(self._outbox.join(), timeout=self._flush_timeout)
            except asyncio.TimeoutError:
                logger.warning("Dropped %d unsent bus messages on close", self._outbox.qsize())
        for task in (self._sender_task, self._receiver_task):
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._sender_task = None
        self._receiver_task = None
        self._outbox = None
        await self._client.aclose()
        self._client = None
        logger.info("Disconnected from bus relay")

    def publish(self, message: Message) -> None:
        if self._outbox is None:
            logger.warning("Publish on disconnected HttpBus dropped: %s", message.kind.value)
            return
        self._outbox.put_nowait(message)

    def subscribe(self, handler: MessageHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

        return unsubscribe

    async def _send_loop(self, client: httpx.AsyncClient, outbox: asyncio.Queue[Message]) -> None:
        while True:
            message = await outbox.get()
            try:
                resp = await client.post("/bus/publish", json=message.to_wire())
                resp.raise_for_status()
            except httpx.HTTPError as e:
                # Best-effort delivery: the message is lost, later ones still go out
                logger.warning("Publish of %s for unit %d failed: %s",
                               message.kind.value, message.unit, e)
            finally:
                outbox.task_done()

    async def _receive_loop(self, client: httpx.AsyncClient, ready: asyncio.Event) -> None:
        while True:
            try:
                async with client.stream("GET", "/bus/subscribe", timeout=None) as resp:
                    resp.raise_for_status()
                    ready.set()
                    async for line in resp.aiter_lines():
                        self._handle_line(line)
            except httpx.HTTPError as e:
                logger.warning("Bus stream interrupted: %s (retrying in %.1fs)", e, self._retry_delay)
            await asyncio.sleep(self._retry_delay)

    def _handle_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        try:
            message = Message.model_validate_json(line)
        except ValidationError as e:
            logger.warning("Skipping malformed bus frame: %s", e)
            return
        dispatch(self._handlers, message)
