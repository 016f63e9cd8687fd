# backend/admitlink/repositories/user_repository.py
"""Read access to accounts plus the best-effort activity timestamp."""

from datetime import datetime
from typing import List, Optional, Sequence, cast

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..core.timezone_utils import utc_now
from ..models.application import StudentProfile, UniversityProfile
from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User lookups used by the identity and relationship gates."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_many(self, user_ids: Sequence[str]) -> List[User]:
        """Fetch the users whose ids are in ``user_ids`` (unknown ids are skipped)."""
        if not user_ids:
            return []
        query = self.db.query(User).filter(User.id.in_(list(user_ids)))
        return cast(List[User], self._execute_query(query))

    def touch_last_active(self, user_id: str, when: Optional[datetime] = None) -> int:
        """
        Set ``last_active_at`` without loading the row.

        Returns:
            Number of rows updated (0 when the user no longer exists)
        """
        try:
            result = self.db.execute(
                update(User).where(User.id == user_id).values(last_active_at=when or utc_now())
            )
            self.db.flush()
            return int(result.rowcount or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error touching last_active_at for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to update last activity: {str(e)}")

    def get_student_profile_id(self, user_id: str) -> Optional[str]:
        query = self.db.query(StudentProfile.id).filter(StudentProfile.user_id == user_id)
        value = self._execute_scalar(query)
        return str(value) if value is not None else None

    def get_university_profile_id(self, user_id: str) -> Optional[str]:
        query = self.db.query(UniversityProfile.id).filter(UniversityProfile.user_id == user_id)
        value = self._execute_scalar(query)
        return str(value) if value is not None else None
