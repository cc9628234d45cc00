from __future__ import annotations

import asyncio
from typing import Dict, Optional, Protocol, Set
from urllib.parse import quote

import httpx
from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from groupcast.errors import DeliveryError, StaleConnectionError


class PushDelivery(Protocol):
    async def post_to_connection(self, connection_id: str, data: bytes) -> None:
        ...


class ConnectionRegistry:
    """
    Live WebSocket connections held by this process, addressable by connection id.

    Only sockets this process held can be reported as gone. An id it never held may
    belong to another instance or to an external gateway, so pushing to it is a plain
    delivery failure and never leads to eviction.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, WebSocket] = {}
        self._gone: Set[str] = set()
        self._lock = asyncio.Lock()

    async def register(self, connection_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections[connection_id] = websocket

    async def unregister(self, connection_id: str, gone: bool = False) -> None:
        """
        Drop a socket. Pass gone=True when its membership row may outlive it, so the
        next push to that id reports it as stale.
        """

        async with self._lock:
            self._connections.pop(connection_id, None)
            if gone:
                self._gone.add(connection_id)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    async def post_to_connection(self, connection_id: str, data: bytes) -> None:
        websocket = self._connections.get(connection_id)
        if websocket is None:
            if connection_id in self._gone:
                self._gone.discard(connection_id)
                raise StaleConnectionError(connection_id)
            raise DeliveryError(f"Connection {connection_id} is not held by this process")
        if WebSocketState.DISCONNECTED in (websocket.client_state, websocket.application_state):
            await self.unregister(connection_id)
            raise StaleConnectionError(connection_id)
        if websocket.application_state == WebSocketState.CONNECTING:
            raise DeliveryError(f"Connection {connection_id} has not been accepted yet")

        try:
            await websocket.send_text(data.decode("utf-8"))
        except WebSocketDisconnect as exc:
            await self.unregister(connection_id)
            raise StaleConnectionError(connection_id) from exc
        except Exception as exc:  # noqa: BLE001
            raise DeliveryError(f"Failed to push to {connection_id}: {exc}") from exc


class HttpPushDelivery:
    """
    Pushes through a gateway management endpoint (POST {endpoint}/@connections/{id}).
    The gateway answers 410 Gone for connections it no longer holds.
    """

    def __init__(self, endpoint_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self._endpoint_url = endpoint_url.rstrip("/")
        self._timeout = timeout
        self._http_client = client

    async def stop(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def connection_url(self, connection_id: str) -> str:
        return f"{self._endpoint_url}/@connections/{quote(connection_id, safe='')}"

    async def post_to_connection(self, connection_id: str, data: bytes) -> None:
        http_client = await self._get_http_client()
        try:
            response = await http_client.post(
                self.connection_url(connection_id),
                content=data,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Push to {connection_id} failed: {exc}") from exc

        if response.status_code == 410:
            raise StaleConnectionError(connection_id)
        if response.is_error:
            raise DeliveryError(f"Push to {connection_id} failed with status {response.status_code}")
