"""Repository for notification inbox entries."""

from __future__ import annotations

from typing import List, Optional, cast

from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.notification import NOTIFICATION_TYPES, Notification
from .base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Data access for per-user notification entries."""

    def __init__(self, db: Session) -> None:
        super().__init__(db, Notification)

    def _validate_type(self, type: str) -> None:
        if type not in NOTIFICATION_TYPES:
            raise RepositoryException(f"Invalid notification type: {type}")

    def create_notification(
        self,
        user_id: str,
        type: str,
        related_id: Optional[str] = None,
    ) -> Notification:
        self._validate_type(type)
        return self.create(user_id=user_id, type=type, related_id=related_id, is_read=False)

    def get_user_notifications(
        self, user_id: str, limit: int = 25, offset: int = 0
    ) -> List[Notification]:
        query = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return cast(List[Notification], self._execute_query(query))

    def get_user_notification_count(self, user_id: str) -> int:
        return self.count(user_id=user_id)

    def get_for_user(self, user_id: str, notification_id: str) -> Optional[Notification]:
        """Ownership is part of the lookup: another user's id reads as a miss."""
        return self.find_one_by(id=notification_id, user_id=user_id)

    def mark_as_read_for_user(self, user_id: str, notification_id: str) -> Optional[Notification]:
        notification = self.get_for_user(user_id, notification_id)
        if notification is None:
            return None
        notification.is_read = True
        self.db.flush()
        return notification
