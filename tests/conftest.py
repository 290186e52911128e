"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
import pytest

from dm_chat.application.dto.message import MessageCreateInput
from dm_chat.application.dto.principal import Principal
from dm_chat.application.exceptions import MutationError
from dm_chat.config import settings
from dm_chat.domain.entities.message import Message
from dm_chat.domain.entities.participant import Participant
from dm_chat.domain.entities.room import Room
from dm_chat.infrastructure.ws.channel_client import SubscriberRegistry

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id="u1", name="Alice", image="https://img.example.com/alice.png")


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id="u2", name="Bob", image=None)


def make_room(room_id: str = "r1", *, created_at: datetime = BASE_TIME) -> Room:
    return Room(id=room_id, last_message_at=None, created_at=created_at)


def make_participants(room_id: str = "r1", *user_ids: str) -> list[Participant]:
    return [
        Participant(room_id=room_id, user_id=user_id, joined_at=BASE_TIME)
        for user_id in (user_ids or ("u1", "u2"))
    ]


def make_message(
    *,
    message_id: str | None = "m1",
    client_id: str = "c1",
    room_id: str = "r1",
    from_id: str = "u2",
    to_id: str = "u1",
    content: str = "hello",
    created_at: datetime = BASE_TIME,
    optimistic: bool = False,
) -> Message:
    return Message(
        id=message_id,
        client_id=client_id,
        room_id=room_id,
        from_id=from_id,
        to_id=to_id,
        content=content,
        content_type="text",
        created_at=created_at,
        optimistic=optimistic,
    )


class FixedClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self._ticks = itertools.count()
        self._start = start

    def now(self) -> datetime:
        return self._start + timedelta(seconds=next(self._ticks))


def sequential_ids(prefix: str = "tmp"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def make_token(sub: str = "u1", name: str | None = "Alice") -> str:
    claims = {"sub": sub}
    if name:
        claims["name"] = name
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# -- client side fakes ------------------------------------------------------


class FakeChannel(SubscriberRegistry):
    """Records emitted events; ``fail_on`` names events whose emit raises."""

    def __init__(self, *, fail_on: set[str] | None = None) -> None:
        super().__init__()
        self.emitted: list[tuple[str, dict[str, Any]]] = []
        self.fail_on = fail_on or set()
        self.closed = False

    async def emit(self, event: str, data: dict[str, Any]) -> None:
        if event in self.fail_on:
            raise ConnectionError(f"{event} emit failed")
        self.emitted.append((str(event), data))

    async def close(self) -> None:
        self.closed = True

    def events(self, name: str) -> list[dict[str, Any]]:
        return [data for event, data in self.emitted if event == name]


@dataclass
class FakeNotifier:
    errors: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    def error(self, text: str) -> None:
        self.errors.append(text)

    def info(self, text: str) -> None:
        self.infos.append(text)


class FakeMutationClient:
    """In-memory durable endpoint.

    With ``manual=True`` every create waits until the test calls
    ``succeed``/``fail`` for its client_id, so settle order is controllable.
    """

    def __init__(
        self,
        *,
        fail_with: Exception | None = None,
        manual: bool = False,
        participants: list[Participant] | None = None,
        history: list[Message] | None = None,
    ) -> None:
        self.fail_with = fail_with
        self.manual = manual
        self.requests: list[MessageCreateInput] = []
        self.participants = participants if participants is not None else make_participants()
        self.history = history or []
        self.closed = False
        self._gates: dict[str, asyncio.Future[Exception | None]] = {}
        self._seq = itertools.count(1)

    async def create_message(self, data: MessageCreateInput) -> Message:
        self.requests.append(data)
        if self.manual:
            gate = asyncio.get_running_loop().create_future()
            self._gates[data.client_id or ""] = gate
            outcome = await gate
            if outcome is not None:
                raise outcome
        elif self.fail_with is not None:
            raise self.fail_with
        return self.durable_for(data)

    def durable_for(self, data: MessageCreateInput) -> Message:
        n = next(self._seq)
        return Message(
            id=f"srv-{n}",
            client_id=data.client_id or f"server-{n}",
            room_id=data.room_id,
            from_id=data.from_id,
            to_id=data.to_id,
            content=data.content,
            content_type=data.content_type.value,
            created_at=BASE_TIME + timedelta(minutes=n),
        )

    def succeed(self, client_id: str) -> None:
        self._gates.pop(client_id).set_result(None)

    def fail(self, client_id: str, exc: Exception | None = None) -> None:
        self._gates.pop(client_id).set_result(exc or MutationError("boom", status_code=500))

    async def list_messages(
        self,
        room_id: str,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        return [m for m in self.history if m.room_id == room_id][:limit]

    async def list_participants(self, room_id: str) -> list[Participant]:
        return [p for p in self.participants if p.room_id == room_id]

    async def aclose(self) -> None:
        self.closed = True


# -- server side fakes ------------------------------------------------------


@dataclass
class FakeRoomReader:
    _store: dict[str, Room] = field(default_factory=dict)
    _participants: list[Participant] = field(default_factory=list)

    async def get_by_id(self, room_id: str) -> Room | None:
        return self._store.get(room_id)

    async def find_direct(self, user_a: str, user_b: str) -> Room | None:
        for room in self._store.values():
            members = {p.user_id for p in self._participants if p.room_id == room.id}
            if members == {user_a, user_b}:
                return room
        return None

    async def list_for_user(self, user_id: str, *, limit: int = 20) -> list[Room]:
        ids = {p.room_id for p in self._participants if p.user_id == user_id}
        return [r for r in self._store.values() if r.id in ids][:limit]


@dataclass
class FakeRoomWriter:
    _reader: FakeRoomReader
    touched: list[tuple[str, datetime]] = field(default_factory=list)

    async def create(self, room: Room) -> Room:
        self._reader._store[room.id] = room
        return room

    async def touch_last_message_at(self, room_id: str, ts: datetime) -> None:
        self.touched.append((room_id, ts))


@dataclass
class FakeParticipantReader:
    _participants: list[Participant] = field(default_factory=list)

    async def is_participant(self, room_id: str, user_id: str) -> bool:
        return any(p.room_id == room_id and p.user_id == user_id for p in self._participants)

    async def list_participants(self, room_id: str) -> list[Participant]:
        return [p for p in self._participants if p.room_id == room_id]


@dataclass
class FakeParticipantWriter:
    _reader: FakeParticipantReader

    async def add(self, participant: Participant) -> None:
        self._reader._participants.append(participant)


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def list_messages(self, room_id: str, *, cursor: str | None = None, limit: int = 50) -> list[Message]:
        ordered = sorted(
            (m for m in self._messages if m.room_id == room_id),
            key=lambda m: (m.created_at, m.id or ""),
        )
        return ordered[:limit]

    async def get_by_id(self, message_id: str) -> Message | None:
        return next((m for m in self._messages if m.id == message_id), None)


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        existing = await self.get_by_client_id(message.room_id, message.from_id, message.client_id)
        if existing is not None:
            return existing, False
        self._reader._messages.append(message)
        return message, True

    async def get_by_client_id(self, room_id: str, from_id: str, client_id: str) -> Message | None:
        for m in self._reader._messages:
            if m.room_id == room_id and m.from_id == from_id and m.client_id == client_id:
                return m
        return None


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    participants: FakeParticipantReader = field(default_factory=FakeParticipantReader)
    participants_w: FakeParticipantWriter | None = None
    rooms: FakeRoomReader | None = None
    rooms_w: FakeRoomWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    _committed: bool = False
    _rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.participants_w is None:
            self.participants_w = FakeParticipantWriter(self.participants)
        if self.rooms is None:
            # Rooms see the same participant list for find_direct.
            self.rooms = FakeRoomReader(_participants=self.participants._participants)
        if self.rooms_w is None:
            self.rooms_w = FakeRoomWriter(self.rooms)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    def add_room(self, room_id: str = "r1", *user_ids: str) -> Room:
        room = make_room(room_id)
        self.rooms._store[room.id] = room
        self.participants._participants.extend(make_participants(room_id, *user_ids))
        return room

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._rollbacks += 1
