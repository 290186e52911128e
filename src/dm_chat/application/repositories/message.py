from __future__ import annotations

from typing import Protocol

from dm_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_messages(
        self,
        room_id: str,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]: ...

    async def get_by_id(self, message_id: str) -> Message | None: ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). If conflict on client_id → return existing."""
        ...

    async def get_by_client_id(
        self,
        room_id: str,
        from_id: str,
        client_id: str,
    ) -> Message | None: ...
