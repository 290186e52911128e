from __future__ import annotations

from datetime import datetime

from pydantic import Field

from dm_chat.api.v1.schemas.common import CamelModel
from dm_chat.domain.entities.participant import Participant
from dm_chat.domain.entities.room import Room


class UserRef(CamelModel):
    id: str


class ParticipantOut(CamelModel):
    user: UserRef

    @classmethod
    def from_entity(cls, participant: Participant) -> ParticipantOut:
        return cls(user=UserRef(id=participant.user_id))


class RoomOut(CamelModel):
    id: str
    last_message_at: datetime | None
    created_at: datetime
    participants: list[ParticipantOut] = []

    @classmethod
    def from_entities(cls, room: Room, participants: list[Participant]) -> RoomOut:
        return cls(
            id=room.id,
            last_message_at=room.last_message_at,
            created_at=room.created_at,
            participants=[ParticipantOut.from_entity(p) for p in participants],
        )


class CreateRoomRequest(CamelModel):
    user_id: str = Field(min_length=1)
