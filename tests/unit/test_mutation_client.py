from __future__ import annotations

import json

import httpx
import pytest

from dm_chat.application.dto.message import MessageCreateInput
from dm_chat.application.exceptions import MutationError
from dm_chat.domain.value_objects.enums import ContentType
from dm_chat.infrastructure.http.mutation_client import HttpMutationClient

MESSAGE_BODY = {
    "id": "srv-1",
    "clientId": "tmp-1",
    "roomId": "r1",
    "fromId": "u1",
    "toId": "u2",
    "content": "https://example.com",
    "contentType": "link",
    "createdAt": "2024-05-01T12:00:00Z",
}


def _client(handler) -> HttpMutationClient:
    return HttpMutationClient(
        "tok",
        base_url="http://chat.test",
        transport=httpx.MockTransport(handler),
    )


def _input() -> MessageCreateInput:
    return MessageCreateInput(
        content="https://example.com",
        content_type=ContentType.LINK,
        room_id="r1",
        to_id="u2",
        from_id="u1",
        client_id="tmp-1",
    )


@pytest.mark.asyncio
async def test_create_message_posts_camel_case_and_parses_envelope():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"message": MESSAGE_BODY})

    async with _client(handler) as client:
        msg = await client.create_message(_input())

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/message/add"
    assert request.headers["Authorization"] == "Bearer tok"
    assert json.loads(request.content) == {
        "content": "https://example.com",
        "contentType": "link",
        "roomId": "r1",
        "toId": "u2",
        "fromId": "u1",
        "clientId": "tmp-1",
    }
    assert msg.id == "srv-1"
    assert msg.client_id == "tmp-1"
    assert msg.content_type == "link"
    assert msg.optimistic is False


@pytest.mark.asyncio
async def test_server_rejection_carries_reason_and_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Message too long"})

    async with _client(handler) as client:
        with pytest.raises(MutationError) as info:
            await client.create_message(_input())

    assert info.value.detail == "Message too long"
    assert info.value.status_code == 422


@pytest.mark.asyncio
async def test_error_without_json_body_has_no_reason():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    async with _client(handler) as client:
        with pytest.raises(MutationError) as info:
            await client.create_message(_input())

    assert info.value.detail == ""
    assert info.value.status_code == 502


@pytest.mark.asyncio
async def test_transport_failure_becomes_mutation_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(MutationError) as info:
            await client.create_message(_input())

    assert info.value.status_code is None
    assert isinstance(info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_malformed_success_body_is_a_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": {"id": "srv-1"}})

    async with _client(handler) as client:
        with pytest.raises(MutationError):
            await client.create_message(_input())


@pytest.mark.asyncio
async def test_list_messages_passes_cursor_and_limit():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"items": [MESSAGE_BODY], "nextCursor": None})

    async with _client(handler) as client:
        items = await client.list_messages("r1", cursor="abc", limit=10)

    assert seen[0].url.path == "/api/rooms/r1/messages"
    assert seen[0].url.params["cursor"] == "abc"
    assert seen[0].url.params["limit"] == "10"
    assert [m.id for m in items] == ["srv-1"]


@pytest.mark.asyncio
async def test_list_participants_reads_room():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/rooms/r1"
        return httpx.Response(200, json={
            "id": "r1",
            "lastMessageAt": None,
            "createdAt": "2024-05-01T12:00:00Z",
            "participants": [{"user": {"id": "u1"}}, {"user": {"id": "u2"}}],
        })

    async with _client(handler) as client:
        participants = await client.list_participants("r1")

    assert [(p.room_id, p.user_id) for p in participants] == [("r1", "u1"), ("r1", "u2")]


@pytest.mark.asyncio
async def test_success_without_client_id_is_still_a_durable_record():
    body = {key: value for key, value in MESSAGE_BODY.items() if key != "clientId"}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": body})

    async with _client(handler) as client:
        msg = await client.create_message(_input())

    assert msg.id == "srv-1"
    assert msg.client_id == "srv-1"
    assert msg.optimistic is False
