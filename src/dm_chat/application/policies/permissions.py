from __future__ import annotations

from collections.abc import Iterable

from dm_chat.application.dto.principal import Principal
from dm_chat.application.exceptions import ForbiddenError, NotFoundError
from dm_chat.application.repositories.participant import ParticipantReader
from dm_chat.domain.entities.participant import Participant
from dm_chat.domain.entities.room import Room


async def assert_room_access(
    principal: Principal,
    room: Room | None,
    participants: ParticipantReader,
) -> Room:
    """Raise if the room doesn't exist or principal is not one of its members."""
    if room is None:
        raise NotFoundError("Room not found")

    is_member = await participants.is_participant(room.id, principal.user_id)
    if not is_member:
        raise ForbiddenError("Not a participant of this room")

    return room


def resolve_recipient(participants: Iterable[Participant], self_id: str) -> str | None:
    """Return the id of the first participant who is not ``self_id``."""
    for participant in participants:
        if participant.user_id != self_id:
            return participant.user_id
    return None
