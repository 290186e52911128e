"""Single-process fan-out for development and tests."""
from __future__ import annotations

import logging
from typing import Any

from dm_chat.infrastructure.bus.redis_pubsub import OnEventCallback
from dm_chat.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)


class InProcessPublisher:
    """EventPublisher that hands events straight to the local dispatcher.

    Payloads still go through the wire serializer so both backends see the
    same JSON shapes.
    """

    def __init__(self, callback: OnEventCallback) -> None:
        self._callback = callback

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        raw = serialize_event(payload.get("event_type", "unknown"), payload)
        event_type, data = deserialize_event(raw)
        try:
            await self._callback(event_type, data)
        except Exception:
            logger.exception("Error dispatching local event on %s", channel)
