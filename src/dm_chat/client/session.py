"""Wires the client core to its transports for one signed-in user."""
from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

from dm_chat.api.v1.schemas.events import RoomRef
from dm_chat.application.dto.principal import Principal
from dm_chat.application.ports.channel import RealTimeChannel
from dm_chat.application.ports.mutation import MessageMutationClient
from dm_chat.application.ports.notifier import LoggingNotifier, Notifier
from dm_chat.client.cache import ConversationCache
from dm_chat.client.composer import Composer
from dm_chat.client.controller import ReconciliationController
from dm_chat.client.inbound import InboundEvents
from dm_chat.client.typing_indicator import TypingIndicator
from dm_chat.config import settings
from dm_chat.infrastructure.http.mutation_client import HttpMutationClient
from dm_chat.infrastructure.ws.channel_client import WebSocketChannel

logger = logging.getLogger(__name__)


class ChatClient:
    def __init__(
        self,
        principal: Principal,
        *,
        mutations: MessageMutationClient,
        channel: RealTimeChannel,
        notifier: Notifier | None = None,
        cache: ConversationCache | None = None,
    ) -> None:
        self.principal = principal
        self.cache = cache or ConversationCache()
        self.notifier = notifier or LoggingNotifier()
        self.inbound = InboundEvents(
            self.cache,
            principal.user_id,
            TypingIndicator(settings.TYPING_INDICATOR_SECONDS),
            notifier=self.notifier,
        )
        self._mutations = mutations
        self._channel = channel
        self._composers: dict[str, Composer] = {}
        self.inbound.attach(channel)

    @classmethod
    async def connect(
        cls,
        principal: Principal,
        token: str,
        *,
        notifier: Notifier | None = None,
    ) -> Self:
        """Open the HTTP and WebSocket transports from settings."""
        channel = WebSocketChannel(token)
        await channel.connect()
        return cls(
            principal,
            mutations=HttpMutationClient(token),
            channel=channel,
            notifier=notifier,
        )

    async def open_conversation(self, room_id: str) -> Composer:
        """Fetch a room's participants and history and start tracking it."""
        if room_id in self._composers:
            return self._composers[room_id]

        participants = await self._mutations.list_participants(room_id)
        history = await self._mutations.list_messages(room_id)
        self.cache.open(room_id, history)
        await self._emit_room_event("join", room_id)

        controller = ReconciliationController(
            room_id,
            self.principal,
            participants,
            cache=self.cache,
            mutations=self._mutations,
            channel=self._channel,
            notifier=self.notifier,
            typing_throttle_seconds=settings.TYPING_THROTTLE_SECONDS,
        )
        composer = Composer(controller)
        self._composers[room_id] = composer
        logger.info("Opened room %s with %d messages", room_id, len(history))
        return composer

    async def close_conversation(self, room_id: str) -> None:
        self._composers.pop(room_id, None)
        self.cache.close(room_id)
        await self._emit_room_event("leave", room_id)

    async def _emit_room_event(self, event: str, room_id: str) -> None:
        try:
            await self._channel.emit(event, RoomRef(room_id=room_id).to_wire())
        except Exception as exc:
            logger.warning("Could not %s room %s on the live channel: %s", event, room_id, exc)

    async def aclose(self) -> None:
        for room_id in list(self._composers):
            await self.close_conversation(room_id)
        self.inbound.detach()
        await self._channel.close()
        await self._mutations.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
