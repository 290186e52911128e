from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from dm_chat.api.deps import CurrentPrincipal, UoWDep
from dm_chat.api.v1.schemas.common import PaginatedResponse
from dm_chat.api.v1.schemas.message import MessageCreateRequest, MessageEnvelope, MessageOut
from dm_chat.infrastructure.db.repositories._cursor import encode_cursor
from dm_chat.services import message_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["messages"])


@router.post("/message/add", response_model=MessageEnvelope, response_model_by_alias=True)
async def add_message(
    body: MessageCreateRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageEnvelope:
    msg, created = await message_service.create_message(body.to_input(), principal, uow)
    if not created:
        logger.info("Duplicate send %s in room %s", msg.client_id, msg.room_id)
    return MessageEnvelope(message=MessageOut.model_validate(msg))


@router.get(
    "/rooms/{room_id}/messages",
    response_model=PaginatedResponse[MessageOut],
    response_model_by_alias=True,
)
async def list_messages(
    room_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[MessageOut]:
    messages = await message_service.list_messages(room_id, principal, cursor, limit, uow)
    next_cursor = None
    if len(messages) == limit:
        last = messages[-1]
        next_cursor = encode_cursor(last.created_at, last.id or "")
    return PaginatedResponse[MessageOut](
        items=[MessageOut.model_validate(m) for m in messages],
        next_cursor=next_cursor,
    )
