from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Message:
    """A chat message, either optimistic (local only) or durable (server-confirmed).

    ``id`` is ``None`` until the server assigns one. ``client_id`` is generated
    by the sending client and never changes, so it identifies the same message
    before and after confirmation.
    """

    id: str | None
    client_id: str
    room_id: str
    from_id: str
    to_id: str
    content: str
    content_type: str
    created_at: datetime
    optimistic: bool = False

    def confirmed_by(self, durable: Message) -> Message:
        """Return the durable record carrying this entry's ``client_id``."""
        return replace(durable, client_id=self.client_id, optimistic=False)
