from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SenderSummary:
    id: str
    name: str | None = None
    image: str | None = None


@dataclass(frozen=True, slots=True)
class MessageNotification:
    """Denormalized new-message notice addressed to one recipient."""

    to_user_id: str
    from_user: SenderSummary
    message: str
    room_id: str
