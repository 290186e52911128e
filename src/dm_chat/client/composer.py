from __future__ import annotations

from dm_chat.client.controller import ReconciliationController
from dm_chat.domain.entities.message import Message
from dm_chat.domain.value_objects.enums import SendState

SEND_KEYS = frozenset({"Enter"})


class Composer:
    """Message input box of one conversation view."""

    def __init__(self, controller: ReconciliationController) -> None:
        self.controller = controller
        self.text = ""
        self.state = SendState.IDLE

    async def edit(self, text: str) -> None:
        self.text = text
        self.state = SendState.COMPOSING if text else SendState.IDLE
        await self.controller.notify_typing(text)

    async def key_down(self, key: str) -> Message | None:
        if key not in SEND_KEYS:
            return None
        return await self.submit()

    async def submit(self) -> Message | None:
        """Send the current text; the box is cleared as soon as the send is accepted."""
        pending = self.controller.begin(self.text)
        if pending is None:
            return None
        self.text = ""
        self.state = SendState.IDLE
        return await self.controller.settle(pending)
