"""Hooks that apply real-time events from other clients to local state."""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from dm_chat.api.v1.schemas.events import NotificationData, TypingData
from dm_chat.api.v1.schemas.message import MessageOut
from dm_chat.application.ports.channel import RealTimeChannel, Unsubscribe
from dm_chat.application.ports.notifier import Notifier
from dm_chat.client.cache import ConversationCache
from dm_chat.client.typing_indicator import TypingIndicator
from dm_chat.domain.events.notification import MessageNotification
from dm_chat.domain.value_objects.enums import ChannelEvent

logger = logging.getLogger(__name__)

NotificationListener = Callable[[MessageNotification], None]


class InboundEvents:
    def __init__(
        self,
        cache: ConversationCache,
        user_id: str,
        typing: TypingIndicator,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self.typing = typing
        self._cache = cache
        self._user_id = user_id
        self._notifier = notifier
        self._listeners: list[NotificationListener] = []
        self._unsubscribes: list[Unsubscribe] = []

    def attach(self, channel: RealTimeChannel) -> None:
        self._unsubscribes = [
            channel.subscribe(ChannelEvent.MESSAGE, self.on_message),
            channel.subscribe(ChannelEvent.TYPING, self.on_typing),
            channel.subscribe(ChannelEvent.NOTIFICATION, self.on_notification),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []
        self.typing.clear()

    def on_notify(self, listener: NotificationListener) -> None:
        self._listeners.append(listener)

    async def on_message(self, data: dict[str, Any]) -> None:
        try:
            message = MessageOut.model_validate(data).to_entity()
        except ValidationError:
            logger.warning("Dropping malformed message event")
            return
        if not self._cache.is_open(message.room_id):
            return
        if self._cache.merge_remote(message.room_id, message):
            # A delivered message ends that user's typing state.
            self.typing.stop(message.room_id, message.from_id)
        else:
            logger.debug("Duplicate message %s ignored", message.id)

    async def on_typing(self, data: dict[str, Any]) -> None:
        try:
            event = TypingData.model_validate(data).to_event()
        except ValidationError:
            return
        if event.user_id is None or event.user_id == self._user_id:
            return
        self.typing.ping(event.room_id, event.user_id)

    async def on_notification(self, data: dict[str, Any]) -> None:
        try:
            event = NotificationData.model_validate(data).to_event()
        except ValidationError:
            logger.warning("Dropping malformed notification event")
            return
        if event.to_user_id != self._user_id:
            return
        for listener in list(self._listeners):
            listener(event)
        if self._notifier is not None and not self._cache.is_open(event.room_id):
            sender = event.from_user.name or event.from_user.id
            self._notifier.info(f"{sender}: {event.message}")
