"""Import all models so Base.metadata sees every table."""
from dm_chat.infrastructure.db.models.message import MessageModel
from dm_chat.infrastructure.db.models.participant import ParticipantModel
from dm_chat.infrastructure.db.models.room import RoomModel

__all__ = [
    "MessageModel",
    "ParticipantModel",
    "RoomModel",
]
