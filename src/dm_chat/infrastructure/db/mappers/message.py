from __future__ import annotations

from dm_chat.domain.entities.message import Message
from dm_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        client_id=model.client_id,
        room_id=model.room_id,
        from_id=model.from_id,
        to_id=model.to_id,
        content=model.content,
        content_type=model.content_type,
        created_at=model.created_at,
    )


def entity_to_values(entity: Message) -> dict[str, object]:
    """Column values for an INSERT; durable records only."""
    if entity.id is None:
        raise ValueError("Cannot persist a message without a server id")
    return {
        "id": entity.id,
        "client_id": entity.client_id,
        "room_id": entity.room_id,
        "from_id": entity.from_id,
        "to_id": entity.to_id,
        "content": entity.content,
        "content_type": entity.content_type,
        "created_at": entity.created_at,
    }
