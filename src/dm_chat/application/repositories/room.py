from __future__ import annotations

from datetime import datetime
from typing import Protocol

from dm_chat.domain.entities.room import Room


class RoomReader(Protocol):
    async def get_by_id(self, room_id: str) -> Room | None: ...

    async def find_direct(self, user_a: str, user_b: str) -> Room | None:
        """Return the two-party room shared by both users, if any."""
        ...

    async def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 20,
    ) -> list[Room]: ...


class RoomWriter(Protocol):
    async def create(self, room: Room) -> Room: ...

    async def touch_last_message_at(self, room_id: str, ts: datetime) -> None: ...
