"""Activity log entries recorded for chat and notification actions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.types import JSON
import ulid

from ..database import Base


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(64), nullable=False)
    related_id = Column(String(26), nullable=True, index=True)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_activities_user_created", "user_id", "created_at"),
        Index("idx_activities_action_created", "action", "created_at"),
    )
