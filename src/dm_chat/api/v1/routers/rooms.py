from __future__ import annotations

from fastapi import APIRouter, Query

from dm_chat.api.deps import CurrentPrincipal, UoWDep
from dm_chat.api.v1.schemas.room import CreateRoomRequest, RoomOut
from dm_chat.services import room_service

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


@router.post("", response_model=RoomOut, response_model_by_alias=True)
async def open_direct_room(
    body: CreateRoomRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> RoomOut:
    room, participants = await room_service.get_or_create_direct_room(
        principal, body.user_id, uow,
    )
    return RoomOut.from_entities(room, participants)


@router.get("", response_model=list[RoomOut], response_model_by_alias=True)
async def list_rooms(
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(20, ge=1, le=100),
) -> list[RoomOut]:
    rooms = await room_service.list_rooms(principal, limit, uow)
    return [RoomOut.from_entities(r, []) for r in rooms]


@router.get("/{room_id}", response_model=RoomOut, response_model_by_alias=True)
async def get_room(
    room_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> RoomOut:
    room, participants = await room_service.get_room(room_id, principal, uow)
    return RoomOut.from_entities(room, participants)
