from __future__ import annotations

from datetime import datetime

from dm_chat.application.dto.message import MessageCreateInput
from dm_chat.application.ports.clock import IdFactory, new_client_id
from dm_chat.domain.entities.message import Message


def create_optimistic_message(
    data: MessageCreateInput,
    created_at: datetime,
    id_factory: IdFactory = new_client_id,
) -> Message:
    """Build the provisional record shown before the server confirms the send.

    No I/O. The returned ``client_id`` is the key the confirmed record will be
    matched on later.
    """
    return Message(
        id=None,
        client_id=id_factory(),
        room_id=data.room_id,
        from_id=data.from_id,
        to_id=data.to_id,
        content=data.content,
        content_type=data.content_type.value,
        created_at=created_at,
        optimistic=True,
    )
