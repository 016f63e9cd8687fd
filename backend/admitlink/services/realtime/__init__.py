from .fanout import (
    BroadcastRoomTransport,
    NullRoomTransport,
    RoomFanOut,
    RoomTransport,
    null_fanout,
)
from .rooms import room_for_conversation, room_for_user

__all__ = [
    "BroadcastRoomTransport",
    "NullRoomTransport",
    "RoomFanOut",
    "RoomTransport",
    "null_fanout",
    "room_for_conversation",
    "room_for_user",
]
