from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi import WebSocketDisconnect
from starlette.websockets import WebSocketState

from groupcast.errors import DeliveryError, StaleConnectionError
from groupcast.services.push_service import ConnectionRegistry, HttpPushDelivery


class _FakeWebSocket:
    def __init__(self, error: Exception | None = None) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[str] = []
        self._error = error

    async def send_text(self, data: str) -> None:
        if self._error is not None:
            raise self._error
        self.sent.append(data)


def test_registry_pushes_to_registered_socket() -> None:
    registry = ConnectionRegistry()
    websocket = _FakeWebSocket()

    async def _run() -> None:
        await registry.register("A", websocket)
        await registry.post_to_connection("A", b'{"message": "hi"}')

    asyncio.run(_run())
    assert websocket.sent == ['{"message": "hi"}']


def test_registry_does_not_call_foreign_connections_stale() -> None:
    registry = ConnectionRegistry()
    with pytest.raises(DeliveryError):
        asyncio.run(registry.post_to_connection("held-elsewhere", b"{}"))


def test_registry_reports_released_connections_as_stale_once() -> None:
    registry = ConnectionRegistry()

    async def _run() -> None:
        await registry.register("A", _FakeWebSocket())
        await registry.unregister("A", gone=True)
        with pytest.raises(StaleConnectionError):
            await registry.post_to_connection("A", b"{}")
        with pytest.raises(DeliveryError):
            await registry.post_to_connection("A", b"{}")

        await registry.register("B", _FakeWebSocket())
        await registry.unregister("B")
        with pytest.raises(DeliveryError):
            await registry.post_to_connection("B", b"{}")

    asyncio.run(_run())


def test_registry_drops_disconnected_sockets() -> None:
    registry = ConnectionRegistry()
    closed = _FakeWebSocket()
    closed.client_state = WebSocketState.DISCONNECTED
    dropped = _FakeWebSocket(error=WebSocketDisconnect(code=1006))

    async def _run() -> None:
        await registry.register("closed", closed)
        await registry.register("dropped", dropped)
        for connection_id in ("closed", "dropped"):
            with pytest.raises(StaleConnectionError):
                await registry.post_to_connection(connection_id, b"{}")

    asyncio.run(_run())
    assert "closed" not in registry
    assert "dropped" not in registry


def test_registry_wraps_other_send_errors() -> None:
    registry = ConnectionRegistry()
    websocket = _FakeWebSocket(error=RuntimeError("send after close"))

    async def _run() -> None:
        await registry.register("A", websocket)
        with pytest.raises(DeliveryError):
            await registry.post_to_connection("A", b"{}")

    asyncio.run(_run())
    assert "A" in registry


def _http_push(handler) -> HttpPushDelivery:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpPushDelivery("https://gateway.example.com/prod/", client=client)


def test_http_push_posts_raw_payload_to_connection_url() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    push = _http_push(handler)
    asyncio.run(push.post_to_connection("abc=", b'{"user": "nav"}'))

    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "https://gateway.example.com/prod/@connections/abc%3D"
    assert seen[0].content == b'{"user": "nav"}'


def test_http_push_maps_410_to_stale() -> None:
    push = _http_push(lambda request: httpx.Response(410))
    with pytest.raises(StaleConnectionError):
        asyncio.run(push.post_to_connection("gone-id", b"{}"))


@pytest.mark.parametrize("status_code", [403, 429, 500])
def test_http_push_maps_other_errors_to_delivery_errors(status_code: int) -> None:
    push = _http_push(lambda request: httpx.Response(status_code))
    with pytest.raises(DeliveryError):
        asyncio.run(push.post_to_connection("abc", b"{}"))


def test_http_push_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    push = _http_push(handler)
    with pytest.raises(DeliveryError):
        asyncio.run(push.post_to_connection("abc", b"{}"))
