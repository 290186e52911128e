"""Routes fan-out events (local or via Redis) to the right WebSocket connections."""
from __future__ import annotations

import logging
from typing import Any

from dm_chat.domain.value_objects.enums import ChannelEvent
from dm_chat.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


def fanout_payload(
    event: ChannelEvent,
    body: dict[str, Any],
    *,
    origin: str,
    room_id: str | None = None,
    to_user_id: str | None = None,
) -> dict[str, Any]:
    return {
        "event_type": event.value,
        "origin": origin,
        "room_id": room_id,
        "to_user_id": to_user_id,
        "body": body,
    }


async def dispatch_fanout(
    manager: ConnectionManager,
    event_type: str,
    data: dict[str, Any],
) -> None:
    body = data.get("body")
    if not isinstance(body, dict):
        return

    if event_type in (ChannelEvent.MESSAGE, ChannelEvent.TYPING):
        room_id = data.get("room_id")
        if not room_id:
            return
        await manager.broadcast_to_room(room_id, event_type, body, exclude=data.get("origin"))
    elif event_type == ChannelEvent.NOTIFICATION:
        to_user_id = data.get("to_user_id")
        if not to_user_id:
            return
        await manager.send_to_user(to_user_id, event_type, body)
    else:
        logger.debug("Ignoring fan-out event %s", event_type)
