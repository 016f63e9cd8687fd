"""
Notification producers for application and access-request changes.

The application and access-request workflows live outside the messaging
core; they call in here after committing their own change so the affected
users get an inbox entry and a live ``application:update`` push.
"""

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.enums import NotificationType
from ..models.notification import Notification
from .base import BaseService
from .notification_service import NotificationService
from .realtime.fanout import RoomFanOut, null_fanout

APPLICATION_UPDATE_EVENT = "application:update"


def application_update_payload(
    application_id: str, status: str, initiated_by: Optional[str]
) -> Dict[str, Any]:
    return {"applicationId": str(application_id), "status": status, "initiatedBy": initiated_by}


class ApplicationEventService(BaseService):
    def __init__(
        self,
        db: Session,
        fanout: Optional[RoomFanOut] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        super().__init__(db)
        self.fanout = fanout or null_fanout()
        self.notification_service = notification_service or NotificationService(
            db, fanout=self.fanout
        )

    @BaseService.measure_operation("application_submitted")
    async def application_submitted(
        self,
        application_id: str,
        status: str,
        initiated_by: str,
        student_user_id: str,
        university_user_id: str,
        recipient_user_id: str,
    ) -> Notification:
        """A new application: notify the receiving side, update both parties live."""
        notification = await self.notification_service.enqueue(
            recipient_user_id, NotificationType.APPLICATION.value, related_id=str(application_id)
        )
        await self.fanout.emit_to_users(
            [student_user_id, university_user_id],
            APPLICATION_UPDATE_EVENT,
            application_update_payload(application_id, status, initiated_by),
        )
        return notification

    @BaseService.measure_operation("application_status_changed")
    async def application_status_changed(
        self,
        application_id: str,
        status: str,
        initiated_by: Optional[str],
        student_user_id: str,
        university_user_id: str,
    ) -> None:
        for user_id in (student_user_id, university_user_id):
            await self.notification_service.enqueue(
                user_id, NotificationType.STATUS_UPDATE.value, related_id=str(application_id)
            )
        await self.fanout.emit_to_users(
            [student_user_id, university_user_id],
            APPLICATION_UPDATE_EVENT,
            application_update_payload(application_id, status, initiated_by),
        )

    @BaseService.measure_operation("access_request_event")
    async def access_request_event(
        self, access_request_id: str, recipient_user_id: str
    ) -> Notification:
        """Access request created or answered; only the other side is told."""
        return await self.notification_service.enqueue(
            recipient_user_id,
            NotificationType.ACCESS_REQUEST.value,
            related_id=str(access_request_id),
        )
