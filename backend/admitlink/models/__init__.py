"""
Database models for the admissions messaging core.

- Collaborator tables read by the core: users, profiles, applications
- Chat: conversations and messages
- Notification inbox and activity log
"""

from .activity import Activity
from .application import Application, StudentProfile, UniversityProfile
from .conversation import Conversation
from .message import Message
from .notification import Notification
from .user import User

__all__ = [
    "Activity",
    "Application",
    "Conversation",
    "Message",
    "Notification",
    "StudentProfile",
    "UniversityProfile",
    "User",
]
