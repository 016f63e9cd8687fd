from .auth import get_current_user, require_chat_participant, require_roles
from .services import (
    get_conversation_service,
    get_message_service,
    get_notification_service,
    get_room_fanout,
)

__all__ = [
    "get_conversation_service",
    "get_current_user",
    "get_message_service",
    "get_notification_service",
    "get_room_fanout",
    "require_chat_participant",
    "require_roles",
]
