"""Client-side store of conversation messages; what the UI renders."""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from dm_chat.domain.entities.message import Message

logger = logging.getLogger(__name__)

Snapshot = tuple[Message, ...]
Updater = Callable[[Snapshot], Sequence[Message]]
Listener = Callable[[str, Snapshot], None]


class ConversationCache:
    """Ordered messages per room, indexed by ``client_id`` and server id.

    Every write goes through ``set``, which swaps in a whole new tuple, so a
    snapshot taken from ``get`` is never mutated afterwards. Writes are
    synchronous and therefore atomic on the event loop.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, Snapshot] = {}
        self._by_client_id: dict[str, dict[str, int]] = {}
        self._by_id: dict[str, dict[str, int]] = {}
        self._open: set[str] = set()
        self._listeners: list[Listener] = []

    # -- lifecycle ---------------------------------------------------------

    def open(self, room_id: str, messages: Sequence[Message] = ()) -> None:
        """Start tracking a room (view entry) with its fetched history."""
        self._open.add(room_id)
        self.set(room_id, lambda _current: tuple(messages))

    def close(self, room_id: str) -> None:
        """Stop tracking a room (view exit); later writes for it are refused by callers."""
        self._open.discard(room_id)
        self._rooms.pop(room_id, None)
        self._by_client_id.pop(room_id, None)
        self._by_id.pop(room_id, None)

    def is_open(self, room_id: str) -> bool:
        return room_id in self._open

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -- primitives --------------------------------------------------------

    def get(self, room_id: str) -> Snapshot:
        return self._rooms.get(room_id, ())

    def set(self, room_id: str, updater: Updater) -> Snapshot:
        updated = tuple(updater(self.get(room_id)))
        self._rooms[room_id] = updated
        self._by_client_id[room_id] = {m.client_id: i for i, m in enumerate(updated)}
        self._by_id[room_id] = {m.id: i for i, m in enumerate(updated) if m.id is not None}
        for listener in list(self._listeners):
            try:
                listener(room_id, updated)
            except Exception:
                logger.exception("Cache listener failed for room %s", room_id)
        return updated

    def position(self, room_id: str, client_id: str) -> int | None:
        return self._by_client_id.get(room_id, {}).get(client_id)

    def find(self, room_id: str, client_id: str) -> Message | None:
        pos = self.position(room_id, client_id)
        return None if pos is None else self.get(room_id)[pos]

    def contains_id(self, room_id: str, message_id: str) -> bool:
        return message_id in self._by_id.get(room_id, {})

    # -- operations built on set() -----------------------------------------

    def append(self, room_id: str, message: Message) -> Snapshot:
        return self.set(room_id, lambda current: (*current, message))

    def remove(self, room_id: str, client_id: str) -> Snapshot:
        return self.set(
            room_id,
            lambda current: tuple(m for m in current if m.client_id != client_id),
        )

    def reconcile(self, room_id: str, client_id: str, durable: Message) -> Message:
        """Put the durable record in the slot of the entry keyed ``client_id``.

        Falls back to appending when no such entry exists (cache was reset
        under us). Applying the same durable record twice is a no-op.
        """
        pos = self.position(room_id, client_id)
        if pos is None:
            if durable.id is not None and self.contains_id(room_id, durable.id):
                return self.get(room_id)[self._by_id[room_id][durable.id]]
            logger.info(
                "Reconciliation miss: client_id=%s not in room %s, appending %s",
                client_id,
                room_id,
                durable.id,
            )
            self.append(room_id, durable)
            return durable

        confirmed = self.get(room_id)[pos].confirmed_by(durable)

        def _replace(current: Snapshot) -> Snapshot:
            return (*current[:pos], confirmed, *current[pos + 1:])

        self.set(room_id, _replace)
        return confirmed

    def merge_remote(self, room_id: str, message: Message) -> bool:
        """Add a durable message that arrived over the real-time channel.

        Returns False for duplicates. An optimistic entry with the same
        ``client_id`` is promoted in place; anything else is inserted after
        every durable message that is not newer, ahead of pending optimistic
        entries.
        """
        if message.id is not None and self.contains_id(room_id, message.id):
            return False

        existing = self.find(room_id, message.client_id)
        if existing is not None:
            if not existing.optimistic:
                return False
            self.reconcile(room_id, message.client_id, message)
            return True

        def _insert(current: Snapshot) -> Snapshot:
            pos = len(current)
            while pos > 0 and (
                current[pos - 1].optimistic or current[pos - 1].created_at > message.created_at
            ):
                pos -= 1
            return (*current[:pos], message, *current[pos:])

        self.set(room_id, _insert)
        return True
