"""WebSocket frame envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # message | typing | notification | join | leave | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # message | typing | notification | joined | error | pong
    data: dict[str, Any] = {}
