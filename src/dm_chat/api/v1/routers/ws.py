from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from dm_chat.api.deps import UoWDep, authenticate
from dm_chat.api.v1.schemas.events import NotificationData, RoomRef, TypingData
from dm_chat.api.v1.schemas.message import MessageOut
from dm_chat.application.dto.principal import Principal
from dm_chat.application.ports.bus import EventPublisher
from dm_chat.application.uow import UnitOfWork
from dm_chat.config import settings
from dm_chat.domain.value_objects.enums import ChannelEvent
from dm_chat.infrastructure.ws.manager import ConnectionManager
from dm_chat.infrastructure.ws.protocol import WsInbound, WsOutbound
from dm_chat.infrastructure.ws.relay import fanout_payload

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

manager = ConnectionManager()


def get_manager() -> ConnectionManager:
    return manager


def _frame(event_type: str, data: dict[str, Any] | None = None) -> str:
    return WsOutbound(type=event_type, data=data or {}).model_dump_json()


async def _send_error(ws: WebSocket, code: str, **extra: Any) -> None:
    await ws.send_text(_frame("error", {"code": code, **extra}))


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    uow: UoWDep,
    token: str = Query(...),
) -> None:
    try:
        principal = await authenticate(token)
    except HTTPException:
        logger.debug("WS auth failed", exc_info=True)
        await websocket.close(code=4001, reason="Authentication failed")
        return

    conn_id = await manager.connect(websocket, principal.user_id)
    publisher: EventPublisher = websocket.app.state.publisher

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{conn_id}",
    )
    try:
        await _read_loop(websocket, conn_id, principal, publisher, uow)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.user_id)
    finally:
        heartbeat_task.cancel()
        manager.disconnect(conn_id)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(_frame("pong"))
    except asyncio.CancelledError:
        pass
    except Exception:
        pass


async def _read_loop(
    ws: WebSocket,
    conn_id: str,
    principal: Principal,
    publisher: EventPublisher,
    uow: UnitOfWork,
) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            frame = WsInbound.model_validate_json(raw)
        except ValidationError:
            await _send_error(ws, "invalid_payload")
            continue

        try:
            if frame.type == "ping":
                await ws.send_text(_frame("pong"))
            elif frame.type == "join":
                await _handle_join(ws, conn_id, principal, frame.data, uow)
            elif frame.type == "leave":
                manager.leave(conn_id, RoomRef.model_validate(frame.data).room_id)
            elif frame.type == ChannelEvent.MESSAGE:
                await _relay_message(ws, conn_id, principal, frame.data, publisher, uow)
            elif frame.type == ChannelEvent.TYPING:
                await _relay_typing(conn_id, principal, frame.data, publisher)
            elif frame.type == ChannelEvent.NOTIFICATION:
                await _relay_notification(ws, conn_id, principal, frame.data, publisher)
            else:
                await _send_error(ws, "unknown_type", type=frame.type)
        except ValidationError as exc:
            await _send_error(ws, "invalid_data", type=frame.type, detail=str(exc.errors()[0]["msg"]))


async def _handle_join(
    ws: WebSocket,
    conn_id: str,
    principal: Principal,
    data: dict[str, Any],
    uow: UnitOfWork,
) -> None:
    room_id = RoomRef.model_validate(data).room_id
    try:
        allowed = await uow.participants.is_participant(room_id, principal.user_id)
    finally:
        # Release the connection; the socket may stay open for hours.
        await uow.rollback()
    if not allowed:
        await _send_error(ws, "forbidden", roomId=room_id)
        return
    manager.join(conn_id, room_id)
    await ws.send_text(_frame("joined", {"roomId": room_id}))


async def _relay_message(
    ws: WebSocket,
    conn_id: str,
    principal: Principal,
    data: dict[str, Any],
    publisher: EventPublisher,
    uow: UnitOfWork,
) -> None:
    message = MessageOut.model_validate(data)
    if message.from_id != principal.user_id:
        await _send_error(ws, "forbidden", type=ChannelEvent.MESSAGE.value)
        return
    if conn_id not in manager.room_members(message.room_id):
        await _send_error(ws, "not_joined", roomId=message.room_id)
        return
    try:
        stored = await uow.messages.get_by_id(message.id)
    finally:
        await uow.rollback()
    # Only durable messages are relayed, and always as stored.
    if stored is None or stored.room_id != message.room_id or stored.from_id != principal.user_id:
        await _send_error(ws, "not_persisted", id=message.id)
        return
    await publisher.publish(
        settings.REDIS_PUBSUB_CHANNEL,
        fanout_payload(
            ChannelEvent.MESSAGE,
            MessageOut.model_validate(stored).to_wire(),
            origin=conn_id,
            room_id=stored.room_id,
        ),
    )


async def _relay_typing(
    conn_id: str,
    principal: Principal,
    data: dict[str, Any],
    publisher: EventPublisher,
) -> None:
    typing = TypingData.model_validate(data)
    # Typing is advisory: silently ignore it for rooms this connection never joined.
    if conn_id not in manager.room_members(typing.room_id):
        return
    body = TypingData(room_id=typing.room_id, user_id=principal.user_id).to_wire()
    await publisher.publish(
        settings.REDIS_PUBSUB_CHANNEL,
        fanout_payload(ChannelEvent.TYPING, body, origin=conn_id, room_id=typing.room_id),
    )


async def _relay_notification(
    ws: WebSocket,
    conn_id: str,
    principal: Principal,
    data: dict[str, Any],
    publisher: EventPublisher,
) -> None:
    notification = NotificationData.model_validate(data)
    if notification.from_user.id != principal.user_id:
        await _send_error(ws, "forbidden", type=ChannelEvent.NOTIFICATION.value)
        return
    await publisher.publish(
        settings.REDIS_PUBSUB_CHANNEL,
        fanout_payload(
            ChannelEvent.NOTIFICATION,
            notification.to_wire(),
            origin=conn_id,
            to_user_id=notification.to_user_id,
        ),
    )
