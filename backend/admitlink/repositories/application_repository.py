# backend/admitlink/repositories/application_repository.py
"""Relationship ledger queries."""

from sqlalchemy.orm import Session

from ..models.application import Application
from .base_repository import BaseRepository


class ApplicationRepository(BaseRepository[Application]):
    """Read-only access to the application ledger."""

    def __init__(self, db: Session):
        super().__init__(db, Application)

    def exists_between(self, student_profile_id: str, university_profile_id: str) -> bool:
        """
        True when at least one application links the two profiles.

        Status is deliberately ignored: any record, pending or decided,
        counts as a relationship.
        """
        return self.exists(from_student=student_profile_id, to_university=university_profile_id)
