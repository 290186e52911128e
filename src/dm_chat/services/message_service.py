from __future__ import annotations

from dm_chat.application.dto.message import MessageCreateInput
from dm_chat.application.dto.principal import Principal
from dm_chat.application.exceptions import ForbiddenError, ValidationError
from dm_chat.application.policies.permissions import assert_room_access
from dm_chat.application.ports.clock import Clock, SystemClock, new_client_id, new_message_id
from dm_chat.application.uow import UnitOfWork
from dm_chat.config import settings
from dm_chat.domain.entities.message import Message


def validate_content(content: str) -> None:
    if not content or not content.strip():
        raise ValidationError("Message cannot be empty")
    if len(content) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError("Message too long")


async def create_message(
    data: MessageCreateInput,
    principal: Principal,
    uow: UnitOfWork,
    clock: Clock | None = None,
) -> tuple[Message, bool]:
    """Persist a direct message idempotently.

    Returns (message, created). If a message with the same client_id was
    already stored for this sender and room, the stored one is returned with
    created=False and nothing is written.
    """
    validate_content(data.content)
    if data.from_id != principal.user_id:
        raise ForbiddenError("Cannot send on behalf of another user")
    if data.to_id == data.from_id:
        raise ValidationError("Recipient must be another user")

    room = await uow.rooms.get_by_id(data.room_id)
    await assert_room_access(principal, room, uow.participants)
    if not await uow.participants.is_participant(data.room_id, data.to_id):
        raise ValidationError("Recipient is not a participant of this room")

    now = (clock or SystemClock()).now()
    msg = Message(
        id=new_message_id(),
        client_id=data.client_id or new_client_id(),
        room_id=data.room_id,
        from_id=data.from_id,
        to_id=data.to_id,
        content=data.content,
        content_type=data.content_type.value,
        created_at=now,
    )

    msg, created = await uow.messages_w.create_if_not_exists(msg)

    if created:
        await uow.rooms_w.touch_last_message_at(data.room_id, msg.created_at)
        await uow.commit()

    return msg, created


async def list_messages(
    room_id: str,
    principal: Principal,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    room = await uow.rooms.get_by_id(room_id)
    await assert_room_access(principal, room, uow.participants)
    return await uow.messages.list_messages(room_id, cursor=cursor, limit=limit)
