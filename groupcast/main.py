from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse

from groupcast.config import get_settings
from groupcast.db_models import uuid7
from groupcast.db_session import get_engine
from groupcast.models import ConnectEvent, DisconnectEvent, EventResult, MessageEvent
from groupcast.services.broadcast_service import BroadcastDispatcher
from groupcast.services.membership_service import MembershipService
from groupcast.services.membership_store import MembershipStore, SQLMembershipStore
from groupcast.services.message_service import MessageService
from groupcast.services.push_service import ConnectionRegistry, HttpPushDelivery, PushDelivery
from groupcast.services.relay_service import RelayService
from groupcast.utils.rate_limit import InMemoryRateLimiter, RateLimiter


settings = get_settings()

logging.basicConfig(level=settings.log_level.upper())
logging.getLogger("websockets").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


rate_limiter = InMemoryRateLimiter()
connection_registry = ConnectionRegistry()
http_push: Optional[HttpPushDelivery] = (
    HttpPushDelivery(settings.push_endpoint_url, timeout=settings.push_timeout_seconds)
    if settings.push_endpoint_url
    else None
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if http_push is not None:
        await http_push.stop()


app = FastAPI(title="Group Broadcast Relay", version="0.1.0", lifespan=lifespan)


def get_membership_store() -> MembershipStore:
    return SQLMembershipStore(get_engine())


def get_rate_limiter() -> RateLimiter:
    return rate_limiter


def get_connection_registry() -> ConnectionRegistry:
    return connection_registry


def get_push_delivery() -> PushDelivery:
    if http_push is not None:
        return http_push
    return connection_registry


def get_relay_service(
    store: MembershipStore = Depends(get_membership_store),
    push: PushDelivery = Depends(get_push_delivery),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> RelayService:
    dispatcher = BroadcastDispatcher(store, push)
    return RelayService(MembershipService(store), MessageService(dispatcher, limiter))


def _event_response(result: EventResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.model_dump(by_alias=True))


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "push": "http" if http_push is not None else "websocket",
    }


@app.post("/events/connect")
async def connect_event(
    event: ConnectEvent,
    relay: RelayService = Depends(get_relay_service),
) -> JSONResponse:
    return _event_response(relay.on_connect(event.connection_id, event.group_id))


@app.post("/events/message")
async def message_event(
    event: MessageEvent,
    relay: RelayService = Depends(get_relay_service),
) -> JSONResponse:
    return _event_response(await relay.on_message(event.connection_id, event.body))


@app.post("/events/disconnect")
async def disconnect_event(
    event: DisconnectEvent,
    relay: RelayService = Depends(get_relay_service),
) -> JSONResponse:
    return _event_response(relay.on_disconnect(event.connection_id))


@app.websocket("/ws")
async def ws_relay(
    websocket: WebSocket,
    relay: RelayService = Depends(get_relay_service),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    connection_id = uuid7().hex
    await registry.register(connection_id, websocket)

    joined = relay.on_connect(connection_id, websocket.query_params.get("groupId"))
    if joined.status_code != status.HTTP_200_OK:
        await registry.unregister(connection_id)
        await websocket.accept()
        await websocket.close(code=1011, reason=joined.body)
        return

    await websocket.accept()
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            result = await relay.on_message(connection_id, message.get("text") or message.get("bytes"))
            if result.status_code != status.HTTP_200_OK:
                await websocket.send_json({"error": result.body, "statusCode": result.status_code})
    except WebSocketDisconnect:
        pass
    finally:
        left = relay.on_disconnect(connection_id)
        # A failed leave keeps the row; remember the id so the next broadcast evicts it.
        await registry.unregister(connection_id, gone=left.status_code != status.HTTP_200_OK)
