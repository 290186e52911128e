from __future__ import annotations

from dm_chat.domain.entities.participant import Participant
from dm_chat.infrastructure.db.models.participant import ParticipantModel


def model_to_entity(model: ParticipantModel) -> Participant:
    return Participant(
        room_id=model.room_id,
        user_id=model.user_id,
        joined_at=model.joined_at,
    )


def entity_to_model(entity: Participant) -> ParticipantModel:
    return ParticipantModel(
        room_id=entity.room_id,
        user_id=entity.user_id,
        joined_at=entity.joined_at,
    )
