from __future__ import annotations

from typing import Protocol

from dm_chat.application.dto.message import MessageCreateInput
from dm_chat.domain.entities.message import Message
from dm_chat.domain.entities.participant import Participant


class MessageMutationClient(Protocol):
    async def create_message(self, data: MessageCreateInput) -> Message:
        """Persist a message. Raise MutationError on any failure, timeouts included."""
        ...

    async def list_messages(
        self,
        room_id: str,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]: ...

    async def list_participants(self, room_id: str) -> list[Participant]: ...

    async def aclose(self) -> None: ...
