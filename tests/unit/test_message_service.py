from __future__ import annotations

import pytest

from dm_chat.application.dto.message import MessageCreateInput
from dm_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from dm_chat.config import settings
from dm_chat.domain.value_objects.enums import ContentType
from dm_chat.services import message_service
from tests.conftest import BASE_TIME, FakeUoW, FixedClock, make_message


@pytest.fixture
def uow():
    uow = FakeUoW()
    uow.add_room("r1", "u1", "u2")
    return uow


def _input(**overrides) -> MessageCreateInput:
    values = dict(content="hello", room_id="r1", to_id="u2", from_id="u1", client_id="tmp-1")
    values.update(overrides)
    return MessageCreateInput(**values)


@pytest.mark.asyncio
async def test_create_message_persists_and_touches_room(alice, uow):
    msg, created = await message_service.create_message(_input(), alice, uow, clock=FixedClock())

    assert created is True
    assert msg.id
    assert msg.client_id == "tmp-1"
    assert msg.content_type == ContentType.TEXT.value
    assert msg.created_at == BASE_TIME
    assert msg.optimistic is False
    assert uow._committed is True
    assert uow.rooms_w.touched == [("r1", BASE_TIME)]


@pytest.mark.asyncio
async def test_create_message_is_idempotent_per_client_id(alice, uow):
    first, created1 = await message_service.create_message(_input(), alice, uow)
    uow._committed = False

    second, created2 = await message_service.create_message(_input(content="hello again"), alice, uow)

    assert created1 is True
    assert created2 is False
    assert second == first
    assert uow._committed is False
    assert len(uow.messages._messages) == 1
    assert len(uow.rooms_w.touched) == 1


@pytest.mark.asyncio
async def test_create_message_without_client_id_gets_one(alice, uow):
    msg, _ = await message_service.create_message(_input(client_id=None), alice, uow)

    assert msg.client_id


@pytest.mark.asyncio
async def test_link_content_type_is_stored(alice, uow):
    msg, _ = await message_service.create_message(
        _input(content="https://example.com", content_type=ContentType.LINK), alice, uow,
    )

    assert msg.content_type == "link"


@pytest.mark.asyncio
async def test_cannot_send_as_someone_else(alice, uow):
    with pytest.raises(ForbiddenError):
        await message_service.create_message(_input(from_id="u2", to_id="u1"), alice, uow)


@pytest.mark.asyncio
async def test_cannot_send_to_self(alice, uow):
    with pytest.raises(ValidationError):
        await message_service.create_message(_input(to_id="u1"), alice, uow)


@pytest.mark.asyncio
async def test_unknown_room_is_not_found(alice, uow):
    with pytest.raises(NotFoundError):
        await message_service.create_message(_input(room_id="nope"), alice, uow)


@pytest.mark.asyncio
async def test_non_member_is_forbidden(alice):
    uow = FakeUoW()
    uow.add_room("r2", "u2", "u3")

    with pytest.raises(ForbiddenError):
        await message_service.create_message(_input(room_id="r2"), alice, uow)


@pytest.mark.asyncio
async def test_recipient_must_be_in_room(alice, uow):
    with pytest.raises(ValidationError, match="Recipient"):
        await message_service.create_message(_input(to_id="u9"), alice, uow)


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["", "   "])
async def test_empty_content_rejected(alice, uow, content):
    with pytest.raises(ValidationError, match="empty"):
        await message_service.create_message(_input(content=content), alice, uow)


@pytest.mark.asyncio
async def test_too_long_content_rejected(alice, uow):
    with pytest.raises(ValidationError, match="too long"):
        await message_service.create_message(
            _input(content="x" * (settings.MESSAGE_MAX_LENGTH + 1)), alice, uow,
        )


@pytest.mark.asyncio
async def test_list_messages_returns_room_timeline(alice, uow):
    uow.messages._messages.extend([
        make_message(message_id="m2", client_id="c2", created_at=BASE_TIME.replace(minute=5)),
        make_message(message_id="m1", client_id="c1"),
        make_message(message_id="x1", client_id="x1", room_id="r2"),
    ])

    items = await message_service.list_messages("r1", alice, None, 50, uow)

    assert [m.id for m in items] == ["m1", "m2"]


@pytest.mark.asyncio
async def test_list_messages_requires_membership(bob):
    uow = FakeUoW()
    uow.add_room("r1", "u1", "u3")

    with pytest.raises(ForbiddenError):
        await message_service.list_messages("r1", bob, None, 50, uow)
