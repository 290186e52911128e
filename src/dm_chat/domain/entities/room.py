from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Room:
    id: str
    last_message_at: datetime | None
    created_at: datetime
