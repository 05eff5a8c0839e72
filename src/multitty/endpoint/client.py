"""HTTP client for a running primary's control API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ControlClient:
    """Lists, spawns and closes sessions on a primary endpoint."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8750",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def health(self) -> dict[str, Any]:
        return (await self._request("GET", "/health")).json()

    async def sessions(self) -> list[dict[str, Any]]:
        return (await self._request("GET", "/sessions")).json()

    async def spawn(self, unit: int | None = None) -> dict[str, Any]:
        payload = {} if unit is None else {"unit": unit}
        return (await self._request("POST", "/sessions", json=payload)).json()

    async def close(self, unit: int) -> dict[str, Any]:
        return (await self._request("DELETE", f"/sessions/{unit}")).json()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise ControlClientError("Not connected to primary")
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ControlClientError(f"Request to {path} failed: {e}") from e
        if resp.is_error:
            detail = resp.text
            try:
                detail = resp.json().get("detail", detail)
            except ValueError:
                pass
            raise ControlClientError(detail, status_code=resp.status_code)
        return resp

    async def __aenter__(self) -> ControlClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.disconnect()


class ControlClientError(Exception):
    """Raised when the primary cannot be reached or rejects a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
