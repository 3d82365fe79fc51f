from __future__ import annotations

import logging

import anyio
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from relaychat.api.deps import get_relay
from relaychat.schemas.ws import (
    AcceptCallIn,
    ChatMessageIn,
    ClientToServer,
    FileUploadIn,
    JoinChatIn,
    StartCallIn,
    client_event_adapter,
)
from relaychat.services.relay_service import ChatRelay, MalformedEvent, RelayError


router = APIRouter()
logger = logging.getLogger(__name__)


def _parse_event(raw: str | None) -> ClientToServer:
    if raw is None:
        raise MalformedEvent("only JSON text frames are accepted")
    try:
        return client_event_adapter.validate_json(raw)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()))
        raise MalformedEvent(f"{loc or 'event'}: {first.get('msg', 'invalid')}") from e


async def _dispatch(relay: ChatRelay, conn_id: str, event: ClientToServer) -> None:
    if isinstance(event, JoinChatIn):
        await relay.join(conn_id, event.name, event.color)
    elif isinstance(event, ChatMessageIn):
        await relay.send_chat(conn_id, event.message, event.color, user=event.user)
    elif isinstance(event, FileUploadIn):
        await relay.share_file(conn_id, event.file_name, user=event.user)
    elif isinstance(event, StartCallIn):
        await relay.start_call(conn_id, event.signal, user=event.user, to=event.to)
    elif isinstance(event, AcceptCallIn):
        await relay.accept_call(conn_id, event.signal, user=event.user, to=event.to)


@router.websocket("/ws")
async def chat_ws(websocket: WebSocket, relay: ChatRelay = Depends(get_relay)):
    await websocket.accept()
    conn_id = await relay.connect(websocket)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

            # binary frames carry "bytes" instead of "text"
            try:
                event = _parse_event(message.get("text"))
                await _dispatch(relay, conn_id, event)
            except RelayError as err:
                await relay.reject(conn_id, err)

    except WebSocketDisconnect as e:
        logger.debug("Connection %s disconnected (code=%s)", conn_id, e.code)
    finally:
        # runs on clean close, abrupt drop and server shutdown alike
        with anyio.CancelScope(shield=True):
            await relay.disconnect(conn_id)
