from __future__ import annotations

from dm_chat.domain.entities.room import Room
from dm_chat.infrastructure.db.models.room import RoomModel


def model_to_entity(model: RoomModel) -> Room:
    return Room(
        id=model.id,
        last_message_at=model.last_message_at,
        created_at=model.created_at,
    )


def entity_to_model(entity: Room) -> RoomModel:
    return RoomModel(
        id=entity.id,
        last_message_at=entity.last_message_at,
        created_at=entity.created_at,
    )
