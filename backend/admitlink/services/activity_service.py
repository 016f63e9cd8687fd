"""Activity log writer for chat and notification actions."""

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..models.activity import Activity
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.activity_repository import ActivityRepository
from .base import BaseService


class ActivityService(BaseService):
    """
    Records user actions.

    ``track`` only flushes; callers own the surrounding transaction so an
    activity row commits together with the action it describes.
    """

    def __init__(self, db: Session, activity_repository: Optional[ActivityRepository] = None):
        super().__init__(db)
        self.activity_repository = activity_repository or ActivityRepository(db)

    def track(
        self,
        user_id: Optional[str],
        action: Optional[str],
        related_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Activity]:
        if not user_id or not action:
            return None
        action = getattr(action, "value", action)
        activity = self.activity_repository.record(
            user_id=str(user_id),
            action=str(action),
            related_id=related_id,
            details=metadata,
        )
        prometheus_metrics.inc_activity(str(action))
        self.logger.debug("Tracked %s for %s", action, user_id)
        return activity
