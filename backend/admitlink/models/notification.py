"""
Notification inbox model.

Entries are created by the system as a side effect of messages, applications
and access requests; only the owning user can list or mark them read.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, String
import ulid

from ..core.enums import NotificationType
from ..database import Base

NOTIFICATION_TYPES = tuple(item.value for item in NotificationType)


class Notification(Base):
    """Per-user inbox entry."""

    __tablename__ = "notifications"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(30), nullable=False)
    related_id = Column(String(26), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
        CheckConstraint(
            "type IN ('access_request', 'application', 'status_update', 'message', 'notification')",
            name="ck_notifications_type",
        ),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user={self.user_id}, type={self.type})>"
