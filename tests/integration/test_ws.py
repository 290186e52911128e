"""WebSocket relay tests over the in-process fan-out backend."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from dm_chat.api.deps import get_uow
from dm_chat.api.v1.schemas.message import MessageOut
from dm_chat.app import create_app
from tests.conftest import FakeUoW, make_message, make_token


@pytest.fixture
def uow():
    uow = FakeUoW()
    uow.add_room("r1", "u1", "u2")
    uow.messages._messages.append(
        make_message(message_id="srv-1", client_id="tmp-1", from_id="u1", to_id="u2"),
    )
    return uow


@pytest.fixture
def client(uow):
    app = create_app()

    async def _override():
        yield uow

    app.dependency_overrides[get_uow] = _override
    # One portal for every socket so the relay runs on a single loop.
    with TestClient(app) as client:
        yield client


def _connect(client, sub):
    return client.websocket_connect(f"/ws/chat?token={make_token(sub)}")


def _join(ws, room_id="r1"):
    ws.send_json({"type": "join", "data": {"roomId": room_id}})
    return ws.receive_json()


def _message_frame(from_id="u1", to_id="u2"):
    wire = MessageOut.model_validate(
        make_message(message_id="srv-1", client_id="tmp-1", from_id=from_id, to_id=to_id),
    ).to_wire()
    return {"type": "message", "data": wire}


def test_ping_pong(client):
    with _connect(client, "u1") as ws:
        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"


def test_bad_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as info:
        with client.websocket_connect("/ws/chat?token=garbage") as ws:
            ws.receive_json()

    assert info.value.code == 4001


def test_join_requires_membership(client):
    with _connect(client, "u3") as ws:
        reply = _join(ws)

    assert reply == {"type": "error", "data": {"code": "forbidden", "roomId": "r1"}}


def test_message_is_relayed_to_other_member_only(client):
    with _connect(client, "u1") as alice, _connect(client, "u2") as bob:
        assert _join(alice) == {"type": "joined", "data": {"roomId": "r1"}}
        assert _join(bob)["type"] == "joined"

        frame = _message_frame()
        alice.send_json(frame)
        received = bob.receive_json()

        assert received == frame

        # Alice got nothing for her own message; the next frame she sees is the pong.
        alice.send_json({"type": "ping"})
        assert alice.receive_json()["type"] == "pong"


def test_message_before_join_is_refused(client):
    with _connect(client, "u1") as ws:
        ws.send_json(_message_frame())
        reply = ws.receive_json()

    assert reply["data"]["code"] == "not_joined"


def test_unsaved_message_is_not_relayed(client):
    frame = _message_frame()
    frame["data"]["id"] = "never-saved"
    with _connect(client, "u1") as alice, _connect(client, "u2") as bob:
        _join(alice)
        _join(bob)

        alice.send_json(frame)
        reply = alice.receive_json()

        bob.send_json({"type": "ping"})
        assert bob.receive_json()["type"] == "pong"

    assert reply == {"type": "error", "data": {"code": "not_persisted", "id": "never-saved"}}


def test_relayed_message_is_the_stored_record(client):
    frame = _message_frame()
    frame["data"]["content"] = "edited in flight"
    with _connect(client, "u1") as alice, _connect(client, "u2") as bob:
        _join(alice)
        _join(bob)

        alice.send_json(frame)

        assert bob.receive_json()["data"]["content"] == "hello"


def test_message_from_someone_else_is_refused(client):
    with _connect(client, "u1") as ws:
        _join(ws)
        ws.send_json(_message_frame(from_id="u2", to_id="u1"))
        reply = ws.receive_json()

    assert reply["data"]["code"] == "forbidden"


def test_typing_is_stamped_with_sender(client):
    with _connect(client, "u1") as alice, _connect(client, "u2") as bob:
        _join(alice)
        _join(bob)

        bob.send_json({"type": "typing", "data": {"roomId": "r1", "userId": "spoofed"}})

        assert alice.receive_json() == {"type": "typing", "data": {"roomId": "r1", "userId": "u2"}}


def test_notification_reaches_recipient_without_join(client):
    notification = {
        "toUserId": "u2",
        "fromUser": {"id": "u1", "name": "Alice"},
        "message": "hello",
        "roomId": "r1",
    }
    with _connect(client, "u1") as alice, _connect(client, "u2") as bob:
        alice.send_json({"type": "notification", "data": notification})

        assert bob.receive_json() == {"type": "notification", "data": notification}


def test_unknown_and_malformed_frames_get_errors(client):
    with _connect(client, "u1") as ws:
        ws.send_json({"type": "dance"})
        assert ws.receive_json()["data"]["code"] == "unknown_type"

        ws.send_text("not json")
        assert ws.receive_json()["data"]["code"] == "invalid_payload"

        ws.send_json({"type": "typing", "data": {}})
        assert ws.receive_json()["data"]["code"] == "invalid_data"
