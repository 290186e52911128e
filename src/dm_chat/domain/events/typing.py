from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class UserTyping:
    room_id: str
    user_id: str | None = None  # filled in by the relay
