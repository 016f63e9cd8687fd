from typing import Any, Dict, List, Optional, cast

from sqlalchemy.orm import Session

from ..models.activity import Activity
from .base_repository import BaseRepository


class ActivityRepository(BaseRepository[Activity]):
    def __init__(self, db: Session):
        super().__init__(db, Activity)

    def record(
        self,
        user_id: str,
        action: str,
        related_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Activity:
        return self.create(
            user_id=user_id, action=action, related_id=related_id, details=details or {}
        )

    def list_for_user(self, user_id: str, limit: int = 50) -> List[Activity]:
        query = (
            self.db.query(Activity)
            .filter(Activity.user_id == user_id)
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .limit(limit)
        )
        return cast(List[Activity], self._execute_query(query))
