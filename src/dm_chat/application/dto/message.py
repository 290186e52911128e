from __future__ import annotations

from dataclasses import dataclass

from dm_chat.domain.value_objects.enums import ContentType


@dataclass(frozen=True, slots=True)
class MessageCreateInput:
    content: str
    room_id: str
    to_id: str
    from_id: str
    content_type: ContentType = ContentType.TEXT
    client_id: str | None = None
