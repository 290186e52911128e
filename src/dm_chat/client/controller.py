"""Optimistic send protocol for one open conversation.

A send moves through ``SUBMITTING`` to either ``RECONCILED`` or
``ROLLED_BACK``:

1. ``begin`` validates, snapshots the room, inserts the optimistic record at
   the tail and returns the pending context. Nothing touches the network.
2. ``settle`` issues the durable create keyed by the same ``client_id``.
   On success the optimistic slot is replaced in place and the confirmed
   message plus a notification go out on the real-time channel. On failure
   the room is restored and the user gets a toast. There is no retry.

Several sends may be pending at once; each one only ever touches its own
``client_id``.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from dm_chat.api.v1.schemas.events import NotificationData, TypingData
from dm_chat.api.v1.schemas.message import MessageOut
from dm_chat.application.dto.message import MessageCreateInput
from dm_chat.application.dto.principal import Principal
from dm_chat.application.exceptions import MutationError, ValidationError
from dm_chat.application.policies.permissions import resolve_recipient
from dm_chat.application.ports.channel import RealTimeChannel
from dm_chat.application.ports.clock import Clock, IdFactory, SystemClock, new_client_id
from dm_chat.application.ports.mutation import MessageMutationClient
from dm_chat.application.ports.notifier import LoggingNotifier, Notifier
from dm_chat.client.cache import ConversationCache, Snapshot
from dm_chat.client.classifier import classify
from dm_chat.client.factory import create_optimistic_message
from dm_chat.domain.entities.message import Message
from dm_chat.domain.entities.participant import Participant
from dm_chat.domain.events.notification import MessageNotification, SenderSummary
from dm_chat.domain.value_objects.enums import ChannelEvent, SendState

logger = logging.getLogger(__name__)

SEND_FAILED = "Failed to send message"
RECIPIENT_ERROR = "Error: recipient error, please try again later"
EMPTY_MESSAGE = "Message cannot be empty"
SETTLED_HISTORY = 100

_TRANSITIONS: dict[SendState, frozenset[SendState]] = {
    SendState.SUBMITTING: frozenset({SendState.RECONCILED, SendState.ROLLED_BACK}),
}


@dataclass(frozen=True, slots=True)
class PendingMutation:
    """Everything one in-flight send needs to settle; discarded afterwards."""

    temp_id: str
    room_id: str
    previous_snapshot: Snapshot
    optimistic: Message
    request: MessageCreateInput


class ReconciliationController:
    def __init__(
        self,
        room_id: str,
        session: Principal,
        participants: Sequence[Participant],
        *,
        cache: ConversationCache,
        mutations: MessageMutationClient,
        channel: RealTimeChannel,
        notifier: Notifier | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory = new_client_id,
        typing_throttle_seconds: float = 0.0,
        settled_history: int = SETTLED_HISTORY,
    ) -> None:
        self.room_id = room_id
        self.session = session
        self.notifier = notifier or LoggingNotifier()
        self._participants = tuple(participants)
        self._cache = cache
        self._mutations = mutations
        self._channel = channel
        self._clock = clock or SystemClock()
        self._id_factory = id_factory
        self._typing_throttle = typing_throttle_seconds
        self._last_typing: datetime | None = None
        self._states: dict[str, SendState] = {}
        # Outcomes of recent sends only; older ones are forgotten.
        self._settled: OrderedDict[str, SendState] = OrderedDict()
        self._settled_history = settled_history
        self._pending: dict[str, PendingMutation] = {}

    @property
    def recipient_id(self) -> str | None:
        return resolve_recipient(self._participants, self.session.user_id)

    def update_participants(self, participants: Sequence[Participant]) -> None:
        self._participants = tuple(participants)

    @property
    def pending(self) -> tuple[PendingMutation, ...]:
        return tuple(self._pending.values())

    def state_of(self, temp_id: str) -> SendState | None:
        return self._states.get(temp_id) or self._settled.get(temp_id)

    # -- typing ------------------------------------------------------------

    async def notify_typing(self, text: str) -> None:
        """Emit a typing signal for a non-empty edit. Failures are dropped."""
        if not text:
            return
        now = self._clock.now()
        if (
            self._typing_throttle > 0
            and self._last_typing is not None
            and (now - self._last_typing).total_seconds() < self._typing_throttle
        ):
            return
        self._last_typing = now
        try:
            await self._channel.emit(ChannelEvent.TYPING, TypingData(room_id=self.room_id).to_wire())
        except Exception as exc:
            logger.debug("Typing signal dropped for room %s: %s", self.room_id, exc)

    # -- send --------------------------------------------------------------

    async def send(self, text: str) -> Message | None:
        pending = self.begin(text)
        if pending is None:
            return None
        return await self.settle(pending)

    def begin(self, text: str) -> PendingMutation | None:
        """Validate and insert the optimistic record. Returns None if refused."""
        try:
            data = self._build_input(text)
        except ValidationError as exc:
            self.notifier.error(exc.detail)
            return None

        previous = self._cache.get(self.room_id)
        optimistic = create_optimistic_message(data, self._clock.now(), self._id_factory)
        pending = PendingMutation(
            temp_id=optimistic.client_id,
            room_id=self.room_id,
            previous_snapshot=previous,
            optimistic=optimistic,
            request=replace(data, client_id=optimistic.client_id),
        )
        self._cache.append(self.room_id, optimistic)
        self._pending[pending.temp_id] = pending
        self._states[pending.temp_id] = SendState.SUBMITTING
        logger.debug("Send %s submitting in room %s", pending.temp_id, self.room_id)
        return pending

    async def settle(self, pending: PendingMutation) -> Message | None:
        """Run the durable request for ``pending`` and reconcile or roll back."""
        try:
            durable = await self._mutations.create_message(pending.request)
        except Exception as exc:
            if not isinstance(exc, MutationError):
                logger.exception("Unexpected failure sending %s", pending.temp_id)
            self._rollback(pending)
            self.notifier.error(self._failure_text(exc))
            return None

        confirmed = self._reconcile(pending, durable)
        await self._broadcast(confirmed)
        return confirmed

    def _build_input(self, text: str) -> MessageCreateInput:
        if not text or not text.strip():
            raise ValidationError(EMPTY_MESSAGE)
        recipient = self.recipient_id
        if recipient is None:
            raise ValidationError(RECIPIENT_ERROR)
        return MessageCreateInput(
            content=text,
            content_type=classify(text),
            room_id=self.room_id,
            to_id=recipient,
            from_id=self.session.user_id,
        )

    def _transition(self, pending: PendingMutation, state: SendState) -> None:
        current = self._states.get(pending.temp_id)
        if current is None or state not in _TRANSITIONS.get(current, frozenset()):
            raise RuntimeError(f"Illegal send transition {current} -> {state}")
        del self._states[pending.temp_id]
        self._pending.pop(pending.temp_id, None)
        self._settled[pending.temp_id] = state
        while len(self._settled) > self._settled_history:
            self._settled.popitem(last=False)

    def _rollback(self, pending: PendingMutation) -> None:
        self._transition(pending, SendState.ROLLED_BACK)
        if not self._cache.is_open(pending.room_id):
            logger.debug("Room %s closed; skipping rollback of %s", pending.room_id, pending.temp_id)
            return

        untouched = (*pending.previous_snapshot, pending.optimistic)

        def _undo(current: Snapshot) -> Snapshot:
            if current == untouched:
                return pending.previous_snapshot
            # Other sends or inbound messages changed the room since; drop only ours.
            return tuple(m for m in current if m.client_id != pending.temp_id)

        self._cache.set(pending.room_id, _undo)
        logger.info("Send %s rolled back", pending.temp_id)

    def _reconcile(self, pending: PendingMutation, durable: Message) -> Message:
        self._transition(pending, SendState.RECONCILED)
        confirmed = pending.optimistic.confirmed_by(durable)
        if not self._cache.is_open(pending.room_id):
            logger.debug("Room %s closed; not reconciling %s", pending.room_id, pending.temp_id)
            return confirmed
        return self._cache.reconcile(pending.room_id, pending.temp_id, confirmed)

    async def _broadcast(self, message: Message) -> None:
        if message.optimistic or message.id is None:
            raise RuntimeError("Refusing to broadcast an unconfirmed message")

        try:
            await self._channel.emit(ChannelEvent.MESSAGE, MessageOut.model_validate(message).to_wire())
        except Exception as exc:
            logger.warning("Live delivery of %s failed: %s", message.id, exc)

        notification = MessageNotification(
            to_user_id=message.to_id,
            from_user=SenderSummary(
                id=self.session.user_id,
                name=self.session.name,
                image=self.session.image,
            ),
            message=message.content,
            room_id=message.room_id,
        )
        try:
            await self._channel.emit(
                ChannelEvent.NOTIFICATION, NotificationData.from_event(notification).to_wire()
            )
        except Exception as exc:
            logger.debug("Notification for %s dropped: %s", message.id, exc)

    @staticmethod
    def _failure_text(exc: Exception) -> str:
        if isinstance(exc, MutationError) and exc.detail:
            return exc.detail
        return SEND_FAILED
