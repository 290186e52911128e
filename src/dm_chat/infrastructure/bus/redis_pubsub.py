"""Cross-instance fan-out of real-time events over Redis Pub/Sub."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from dm_chat.domain.value_objects.enums import ChannelEvent
from dm_chat.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)

OnEventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]

RESUBSCRIBE_DELAY_SECONDS = 1.0
_RELAYED_EVENTS = frozenset(event.value for event in ChannelEvent)


class RedisFanoutPublisher:
    """Implements application.ports.bus.EventPublisher; every instance sees every event."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        event_type = payload.get("event_type", "unknown")
        receivers = await self._redis.publish(channel, serialize_event(event_type, payload))
        logger.debug("Fan-out %s on %s reached %s instance(s)", event_type, channel, receivers)


class RedisFanoutSubscriber:
    """Feeds fan-out events from Redis into this instance's dispatcher.

    A dropped Redis connection is retried after ``RESUBSCRIBE_DELAY_SECONDS``;
    events published while disconnected are lost (typing and notifications
    are advisory, messages are durable on the server anyway).
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnEventCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="dm-fanout-subscriber")
        logger.info("Fan-out subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Fan-out subscriber stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self._listen()
            except RedisConnectionError as exc:
                logger.warning("Fan-out subscription lost (%s); resubscribing", exc)
                await asyncio.sleep(RESUBSCRIBE_DELAY_SECONDS)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] == "message":
                    await self._handle(message["data"])
        finally:
            await pubsub.aclose()

    async def _handle(self, raw: str | bytes) -> None:
        try:
            event_type, data = deserialize_event(raw)
        except ValueError:
            logger.warning("Dropping malformed fan-out payload")
            return
        if event_type not in _RELAYED_EVENTS:
            logger.debug("Ignoring fan-out event %s", event_type)
            return
        try:
            await self._callback(event_type, data)
        except Exception:
            logger.exception("Error dispatching fan-out event %s", event_type)
