from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dm_chat.domain.entities.room import Room
from dm_chat.infrastructure.db.mappers import room as mapper
from dm_chat.infrastructure.db.models.participant import ParticipantModel
from dm_chat.infrastructure.db.models.room import RoomModel


class RoomReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, room_id: str) -> Room | None:
        model = await self._session.get(RoomModel, room_id)
        return mapper.model_to_entity(model) if model else None

    async def find_direct(self, user_a: str, user_b: str) -> Room | None:
        members = (
            select(ParticipantModel.room_id)
            .group_by(ParticipantModel.room_id)
            .having(func.count() == 2)
            .having(func.count().filter(ParticipantModel.user_id.in_([user_a, user_b])) == 2)
        )
        stmt = select(RoomModel).where(RoomModel.id.in_(members)).limit(1)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 20,
    ) -> list[Room]:
        stmt = (
            select(RoomModel)
            .join(ParticipantModel, ParticipantModel.room_id == RoomModel.id)
            .where(ParticipantModel.user_id == user_id)
            .order_by(RoomModel.last_message_at.desc().nulls_last(), RoomModel.id.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class RoomWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, room: Room) -> Room:
        model = mapper.entity_to_model(room)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def touch_last_message_at(self, room_id: str, ts: datetime) -> None:
        stmt = update(RoomModel).where(RoomModel.id == room_id).values(last_message_at=ts)
        await self._session.execute(stmt)
