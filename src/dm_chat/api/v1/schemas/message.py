from __future__ import annotations

from datetime import datetime, timezone

from pydantic import Field, field_validator

from dm_chat.api.v1.schemas.common import CamelModel
from dm_chat.application.dto.message import MessageCreateInput
from dm_chat.domain.entities.message import Message
from dm_chat.domain.value_objects.enums import ContentType


class MessageCreateRequest(CamelModel):
    content: str
    content_type: ContentType = ContentType.TEXT
    room_id: str = Field(min_length=1)
    to_id: str = Field(min_length=1)
    from_id: str = Field(min_length=1)
    client_id: str | None = Field(default=None, max_length=64)

    def to_input(self) -> MessageCreateInput:
        return MessageCreateInput(
            content=self.content,
            content_type=self.content_type,
            room_id=self.room_id,
            to_id=self.to_id,
            from_id=self.from_id,
            client_id=self.client_id,
        )

    @classmethod
    def from_input(cls, data: MessageCreateInput) -> MessageCreateRequest:
        return cls(
            content=data.content,
            content_type=data.content_type,
            room_id=data.room_id,
            to_id=data.to_id,
            from_id=data.from_id,
            client_id=data.client_id,
        )


class MessageOut(CamelModel):
    """Durable message as it travels over HTTP and the real-time channel.

    ``clientId`` is echoed when the server knows it; senders restore it from
    their optimistic entry, receivers fall back to the server id.
    """

    id: str
    client_id: str | None = None
    room_id: str
    from_id: str
    to_id: str
    content: str
    content_type: ContentType
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value

    def to_entity(self) -> Message:
        return Message(
            id=self.id,
            client_id=self.client_id or self.id,
            room_id=self.room_id,
            from_id=self.from_id,
            to_id=self.to_id,
            content=self.content,
            content_type=self.content_type.value,
            created_at=self.created_at,
        )


class MessageEnvelope(CamelModel):
    message: MessageOut
