from __future__ import annotations

from enum import StrEnum


class ContentType(StrEnum):
    TEXT = "text"
    LINK = "link"


class ChannelEvent(StrEnum):
    MESSAGE = "message"
    TYPING = "typing"
    NOTIFICATION = "notification"


class SendState(StrEnum):
    IDLE = "idle"
    COMPOSING = "composing"
    SUBMITTING = "submitting"
    RECONCILED = "reconciled"
    ROLLED_BACK = "rolled_back"
