"""Client end of the real-time channel."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any
from urllib.parse import urlencode

from pydantic import ValidationError
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from dm_chat.application.ports.channel import EventHandler, Unsubscribe
from dm_chat.config import settings
from dm_chat.infrastructure.ws.protocol import WsInbound, WsOutbound

logger = logging.getLogger(__name__)


class SubscriberRegistry:
    """Event name -> handlers, shared by every channel implementation."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event: str, handler: EventHandler) -> Unsubscribe:
        self._handlers.setdefault(event, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    async def deliver(self, event: str, data: dict[str, Any]) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s event failed", event)


class WebSocketChannel(SubscriberRegistry):
    """Implements application.ports.channel.RealTimeChannel over a WebSocket.

    Reconnection is left to the owner: after the reader stops, ``connected``
    turns false and ``emit`` raises ``ConnectionError``.
    """

    def __init__(self, token: str, *, url: str | None = None) -> None:
        super().__init__()
        self._url = f"{url or settings.CHAT_WS_URL}?{urlencode({'token': token})}"
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task[None] | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(self) -> None:
        self._ws = await connect(self._url)
        self._reader = asyncio.create_task(self._read_loop(), name="dm-chat-channel-reader")
        logger.info("Real-time channel connected")

    async def close(self) -> None:
        ws = self._ws
        if self._reader:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        self._ws = None
        if ws is not None:
            await ws.close()

    async def emit(self, event: str, data: dict[str, Any]) -> None:
        if self._ws is None:
            raise ConnectionError("Real-time channel is not connected")
        await self._ws.send(WsInbound(type=event, data=data).model_dump_json())

    async def handle_frame(self, raw: str | bytes) -> None:
        try:
            frame = WsOutbound.model_validate_json(raw)
        except ValidationError:
            logger.warning("Dropping malformed channel frame")
            return
        if frame.type == "error":
            logger.warning("Channel error frame: %s", frame.data)
        await self.deliver(frame.type, frame.data)

    async def _read_loop(self) -> None:
        assert self._ws is not None
        try:
            async for raw in self._ws:
                await self.handle_frame(raw)
        except ConnectionClosed:
            logger.info("Real-time channel closed by server")
        finally:
            self._ws = None
