"""In-process WebSocket connection manager."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from fastapi import WebSocket

from dm_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks WebSocket connections per user and room subscriptions per connection.

    A user may hold several connections (tabs); each joins rooms on its own.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, WebSocket] = {}
        self._owners: dict[str, str] = {}
        self._by_user: dict[str, set[str]] = {}
        self._rooms: dict[str, set[str]] = {}

    async def connect(self, ws: WebSocket, user_id: str) -> str:
        await ws.accept()
        conn_id = uuid.uuid4().hex
        self._sockets[conn_id] = ws
        self._owners[conn_id] = user_id
        self._by_user.setdefault(user_id, set()).add(conn_id)
        logger.debug("WS connected: %s/%s (total=%d)", user_id, conn_id, len(self._sockets))
        return conn_id

    def disconnect(self, conn_id: str) -> None:
        self._sockets.pop(conn_id, None)
        user_id = self._owners.pop(conn_id, None)
        if user_id is not None:
            conns = self._by_user.get(user_id)
            if conns:
                conns.discard(conn_id)
                if not conns:
                    del self._by_user[user_id]
        for room_id in [r for r, subs in self._rooms.items() if conn_id in subs]:
            self.leave(conn_id, room_id)
        logger.debug("WS disconnected: %s/%s", user_id, conn_id)

    def join(self, conn_id: str, room_id: str) -> None:
        self._rooms.setdefault(room_id, set()).add(conn_id)

    def leave(self, conn_id: str, room_id: str) -> None:
        subs = self._rooms.get(room_id)
        if subs:
            subs.discard(conn_id)
            if not subs:
                del self._rooms[room_id]

    def room_members(self, room_id: str) -> set[str]:
        return set(self._rooms.get(room_id, ()))

    def user_connections(self, user_id: str) -> set[str]:
        return set(self._by_user.get(user_id, ()))

    async def broadcast_to_room(
        self,
        room_id: str,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        """Send a frame to every connection in a room except ``exclude``."""
        targets = [c for c in self.room_members(room_id) if c != exclude]
        await self._send_many(targets, event_type, data)

    async def send_to_user(
        self,
        user_id: str,
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        """Send a frame to every connection of one user."""
        await self._send_many(self.user_connections(user_id), event_type, data)

    async def _send_many(
        self,
        conn_ids: Iterable[str],
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        dead: list[str] = []
        for conn_id in conn_ids:
            ws = self._sockets.get(conn_id)
            if ws is None:
                continue
            try:
                await ws.send_text(raw)
            except Exception:
                dead.append(conn_id)
        for conn_id in dead:
            self.disconnect(conn_id)
