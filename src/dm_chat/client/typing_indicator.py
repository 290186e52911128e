from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, frozenset[str]], None]


class TypingIndicator:
    """Tracks who is typing in each room.

    Each ping schedules an expiry; a newer ping from the same user cancels
    and replaces the pending expiry instead of stacking timers.
    """

    def __init__(self, timeout: float, on_change: ChangeListener | None = None) -> None:
        self._timeout = timeout
        self._on_change = on_change
        self._handles: dict[tuple[str, str], asyncio.TimerHandle] = {}

    def typing_in(self, room_id: str) -> frozenset[str]:
        return frozenset(user for room, user in self._handles if room == room_id)

    def ping(self, room_id: str, user_id: str) -> None:
        key = (room_id, user_id)
        previous = self._handles.pop(key, None)
        if previous is not None:
            previous.cancel()
        loop = asyncio.get_running_loop()
        self._handles[key] = loop.call_later(self._timeout, self._expire, key)
        if previous is None:
            self._notify(room_id)

    def stop(self, room_id: str, user_id: str) -> None:
        handle = self._handles.pop((room_id, user_id), None)
        if handle is not None:
            handle.cancel()
            self._notify(room_id)

    def clear(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        rooms = {room for room, _ in self._handles}
        self._handles.clear()
        for room_id in rooms:
            self._notify(room_id)

    def _expire(self, key: tuple[str, str]) -> None:
        if self._handles.pop(key, None) is not None:
            self._notify(key[0])

    def _notify(self, room_id: str) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(room_id, self.typing_in(room_id))
        except Exception:
            logger.exception("Typing listener failed for room %s", room_id)
