from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from the session token."""

    user_id: str
    name: str | None = None
    image: str | None = None
