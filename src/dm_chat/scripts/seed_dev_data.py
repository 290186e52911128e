"""Seed development data: creates the schema, a direct room and a short history."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from dm_chat.application.dto.principal import Principal
from dm_chat.application.ports.clock import new_client_id, new_message_id
from dm_chat.client.classifier import classify
from dm_chat.domain.entities.message import Message
from dm_chat.infrastructure.db.session import AsyncSessionLocal, create_schema
from dm_chat.infrastructure.db.uow import SqlAlchemyUoW
from dm_chat.services import room_service

logger = logging.getLogger(__name__)

ALICE = Principal(user_id="alice", name="Alice")
BOB = Principal(user_id="bob", name="Bob")


async def seed() -> None:
    await create_schema()
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        room, _participants = await room_service.get_or_create_direct_room(ALICE, BOB.user_id, uow)

        start = datetime.now(timezone.utc) - timedelta(minutes=5)
        messages_data = [
            (ALICE, BOB, "Hey Bob!"),
            (BOB, ALICE, "Hi Alice, how are you?"),
            (ALICE, BOB, "https://example.com/holiday-photos"),
            (BOB, ALICE, "Nice, see you there"),
        ]
        for offset, (sender, recipient, content) in enumerate(messages_data):
            msg = Message(
                id=new_message_id(),
                client_id=new_client_id(),
                room_id=room.id,
                from_id=sender.user_id,
                to_id=recipient.user_id,
                content=content,
                content_type=classify(content).value,
                created_at=start + timedelta(seconds=offset),
            )
            await uow.messages_w.create_if_not_exists(msg)
            await uow.rooms_w.touch_last_message_at(room.id, msg.created_at)

        await uow.commit()
        logger.info("Seeded room %s with %d messages", room.id, len(messages_data))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
