"""Payloads of the real-time channel events."""
from __future__ import annotations

from dm_chat.api.v1.schemas.common import CamelModel
from dm_chat.domain.events.notification import MessageNotification, SenderSummary
from dm_chat.domain.events.typing import UserTyping


class RoomRef(CamelModel):
    room_id: str


class TypingData(CamelModel):
    room_id: str
    user_id: str | None = None

    def to_event(self) -> UserTyping:
        return UserTyping(room_id=self.room_id, user_id=self.user_id)


class SenderOut(CamelModel):
    id: str
    name: str | None = None
    image: str | None = None


class NotificationData(CamelModel):
    to_user_id: str
    from_user: SenderOut
    message: str
    room_id: str

    @classmethod
    def from_event(cls, event: MessageNotification) -> NotificationData:
        return cls(
            to_user_id=event.to_user_id,
            from_user=SenderOut(
                id=event.from_user.id,
                name=event.from_user.name,
                image=event.from_user.image,
            ),
            message=event.message,
            room_id=event.room_id,
        )

    def to_event(self) -> MessageNotification:
        return MessageNotification(
            to_user_id=self.to_user_id,
            from_user=SenderSummary(
                id=self.from_user.id,
                name=self.from_user.name,
                image=self.from_user.image,
            ),
            message=self.message,
            room_id=self.room_id,
        )
