from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Default wall-clock implementation."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


IdFactory = Callable[[], str]


def new_client_id() -> str:
    """Locally unique id for an outgoing message."""
    return f"tmp-{uuid.uuid4().hex}"


def new_message_id() -> str:
    return uuid.uuid4().hex
