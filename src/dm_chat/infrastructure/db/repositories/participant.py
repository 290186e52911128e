from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dm_chat.domain.entities.participant import Participant
from dm_chat.infrastructure.db.mappers import participant as mapper
from dm_chat.infrastructure.db.models.participant import ParticipantModel


class ParticipantReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def is_participant(self, room_id: str, user_id: str) -> bool:
        stmt = (
            select(ParticipantModel.id)
            .where(
                ParticipantModel.room_id == room_id,
                ParticipantModel.user_id == user_id,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_participants(self, room_id: str) -> list[Participant]:
        stmt = (
            select(ParticipantModel)
            .where(ParticipantModel.room_id == room_id)
            .order_by(ParticipantModel.joined_at.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ParticipantWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, participant: Participant) -> None:
        model = mapper.entity_to_model(participant)
        self._session.add(model)
        await self._session.flush()
