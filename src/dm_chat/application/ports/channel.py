from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

EventHandler = Callable[[dict[str, Any]], Awaitable[None] | None]
Unsubscribe = Callable[[], None]


class RealTimeChannel(Protocol):
    """Persistent bidirectional event connection shared by all conversations."""

    async def emit(self, event: str, data: dict[str, Any]) -> None: ...

    def subscribe(self, event: str, handler: EventHandler) -> Unsubscribe: ...

    async def close(self) -> None: ...
