"""
Repository layer for the messaging core.

Repositories own all query construction; services own transactions.
"""

from .activity_repository import ActivityRepository
from .application_repository import ApplicationRepository
from .base_repository import BaseRepository, IRepository
from .conversation_repository import ConversationRepository
from .message_repository import MessageRepository
from .notification_repository import NotificationRepository
from .user_repository import UserRepository

__all__ = [
    "ActivityRepository",
    "ApplicationRepository",
    "BaseRepository",
    "ConversationRepository",
    "IRepository",
    "MessageRepository",
    "NotificationRepository",
    "UserRepository",
]
