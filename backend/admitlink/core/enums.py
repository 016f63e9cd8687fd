# backend/admitlink/core/enums.py
"""
Core enums for the admissions messaging core.

Values are stored as plain strings in the database and sent verbatim on the
wire, so every enum mixes in ``str``.
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles a user account can hold."""

    STUDENT = "student"
    UNIVERSITY = "university"
    ADMIN = "admin"


class NotificationType(str, Enum):
    """Kinds of entries in a user's notification inbox."""

    ACCESS_REQUEST = "access_request"
    APPLICATION = "application"
    STATUS_UPDATE = "status_update"
    MESSAGE = "message"
    NOTIFICATION = "notification"


class ActivityAction(str, Enum):
    """Activity log actions recorded by the messaging core."""

    CONVERSATION_STARTED = "conversation.started"
    MESSAGE_SENT = "message.sent"
    MESSAGE_READ = "message.read"
    NOTIFICATION_CREATED = "notification.created"
    NOTIFICATION_READ = "notification.read"
