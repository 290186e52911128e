from __future__ import annotations

import uuid

from dm_chat.application.dto.principal import Principal
from dm_chat.application.exceptions import ValidationError
from dm_chat.application.policies.permissions import assert_room_access
from dm_chat.application.ports.clock import Clock, SystemClock
from dm_chat.application.uow import UnitOfWork
from dm_chat.domain.entities.participant import Participant
from dm_chat.domain.entities.room import Room


async def get_or_create_direct_room(
    principal: Principal,
    other_user_id: str,
    uow: UnitOfWork,
    clock: Clock | None = None,
) -> tuple[Room, list[Participant]]:
    """Return the two-party room between the caller and another user, creating it if needed."""
    if not other_user_id or other_user_id == principal.user_id:
        raise ValidationError("A direct room needs another user")

    existing = await uow.rooms.find_direct(principal.user_id, other_user_id)
    if existing is not None:
        return existing, await uow.participants.list_participants(existing.id)

    now = (clock or SystemClock()).now()
    room = await uow.rooms_w.create(
        Room(id=uuid.uuid4().hex, last_message_at=None, created_at=now)
    )
    participants = [
        Participant(room_id=room.id, user_id=user_id, joined_at=now)
        for user_id in (principal.user_id, other_user_id)
    ]
    for participant in participants:
        await uow.participants_w.add(participant)
    await uow.commit()
    return room, participants


async def get_room(
    room_id: str,
    principal: Principal,
    uow: UnitOfWork,
) -> tuple[Room, list[Participant]]:
    room = await uow.rooms.get_by_id(room_id)
    room = await assert_room_access(principal, room, uow.participants)
    return room, await uow.participants.list_participants(room.id)


async def list_rooms(principal: Principal, limit: int, uow: UnitOfWork) -> list[Room]:
    return await uow.rooms.list_for_user(principal.user_id, limit=limit)
