"""
Service layer for the messaging core.

Synchronous services own database work; the async entry points
(``MessageService.send``/``read``, ``NotificationService.enqueue`` and
``ApplicationEventService``) run that work in a worker thread and then fan
results out through an injected ``RoomFanOut``.
"""

from .activity_service import ActivityService
from .application_event_service import ApplicationEventService
from .base import BaseService
from .conversation_service import ConversationService
from .identity_service import AuthenticatedUser, IdentityService
from .message_service import MessageService
from .notification_service import NotificationService
from .relationship_service import RelationshipService

__all__ = [
    "ActivityService",
    "ApplicationEventService",
    "AuthenticatedUser",
    "BaseService",
    "ConversationService",
    "IdentityService",
    "MessageService",
    "NotificationService",
    "RelationshipService",
]
