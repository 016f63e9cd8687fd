# backend/admitlink/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

The room fan-out is created once in the application lifespan and stored on
``app.state``; these factories hand it to every service that emits events.
"""

from fastapi import Depends
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from ...database import get_db
from ...services.conversation_service import ConversationService
from ...services.message_service import MessageService
from ...services.notification_service import NotificationService
from ...services.realtime.fanout import RoomFanOut, null_fanout


def get_room_fanout(connection: HTTPConnection) -> RoomFanOut:
    """The app's fan-out, or a no-op one when realtime is not wired up."""
    fanout = getattr(connection.app.state, "room_fanout", None)
    return fanout if fanout is not None else null_fanout()


def get_conversation_service(db: Session = Depends(get_db)) -> ConversationService:
    return ConversationService(db)


def get_notification_service(
    db: Session = Depends(get_db),
    fanout: RoomFanOut = Depends(get_room_fanout),
) -> NotificationService:
    return NotificationService(db, fanout=fanout)


def get_message_service(
    db: Session = Depends(get_db),
    fanout: RoomFanOut = Depends(get_room_fanout),
) -> MessageService:
    return MessageService(db, fanout=fanout)
