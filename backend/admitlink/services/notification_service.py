# backend/admitlink/services/notification_service.py
"""
Notification Sink.

Persists per-user inbox entries and pushes each new one to the owner's
personal room. Listing and marking read are owner-scoped lookups.
"""

import asyncio
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import ActivityAction
from ..core.pagination import Page, PageRequest
from ..models.notification import Notification
from ..repositories.notification_repository import NotificationRepository
from ..schemas.notifications import NotificationResponse
from .activity_service import ActivityService
from .base import BaseService
from .realtime.fanout import RoomFanOut, null_fanout

NOTIFICATION_NEW_EVENT = "notification:new"


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    return NotificationResponse.model_validate(notification).model_dump(by_alias=True, mode="json")


async def publish_notification(fanout: RoomFanOut, notification: Notification) -> None:
    await fanout.emit_to_user(
        str(notification.user_id), NOTIFICATION_NEW_EVENT, serialize_notification(notification)
    )


class NotificationService(BaseService):
    """Creates, lists and acknowledges notification inbox entries."""

    def __init__(
        self,
        db: Session,
        fanout: Optional[RoomFanOut] = None,
        notification_repository: Optional[NotificationRepository] = None,
        activity_service: Optional[ActivityService] = None,
    ):
        super().__init__(db)
        self.fanout = fanout or null_fanout()
        self.notification_repository = notification_repository or NotificationRepository(db)
        self.activity_service = activity_service or ActivityService(db)

    @BaseService.measure_operation("create_notification")
    def create(self, user_id: str, type: str, related_id: Optional[str] = None) -> Notification:
        """Persist an unread entry (no fan-out)."""
        with self.transaction():
            notification = self.notification_repository.create_notification(
                user_id=str(user_id), type=type, related_id=related_id
            )
            self.activity_service.track(
                str(user_id),
                ActivityAction.NOTIFICATION_CREATED.value,
                related_id=related_id,
                metadata={"type": type},
            )
        return notification

    @BaseService.measure_operation("enqueue_notification")
    async def enqueue(
        self, user_id: str, type: str, related_id: Optional[str] = None
    ) -> Notification:
        """
        Persist a notification, then push ``notification:new`` to the owner.

        The push is best-effort; persistence failures propagate.
        """
        notification = await asyncio.to_thread(self.create, user_id, type, related_id)
        await publish_notification(self.fanout, notification)
        return notification

    @BaseService.measure_operation("list_notifications")
    def list_for_user(
        self, user_id: str, page: Optional[int] = None, limit: Optional[int] = None
    ) -> Page[Notification]:
        request = PageRequest.normalize(page, limit, settings.notification_page_size)
        items = self.notification_repository.get_user_notifications(
            user_id, limit=request.limit, offset=request.offset
        )
        total = self.notification_repository.get_user_notification_count(user_id)
        return Page(items=items, total=total, request=request)

    @BaseService.measure_operation("mark_notification_read")
    def mark_read(self, user_id: str, notification_id: str) -> Optional[Notification]:
        """
        Mark one of the user's notifications read.

        Returns:
            The notification, or None when it does not exist or belongs to
            someone else
        """
        with self.transaction():
            notification = self.notification_repository.mark_as_read_for_user(
                user_id, notification_id
            )
            if notification is None:
                return None
            self.activity_service.track(
                user_id, ActivityAction.NOTIFICATION_READ.value, related_id=str(notification.id)
            )
        return notification
