"""Relationship Gate: who may open a conversation with whom."""

from typing import Optional

from sqlalchemy.orm import Session

from ..repositories.application_repository import ApplicationRepository
from ..repositories.user_repository import UserRepository
from .base import BaseService


class RelationshipService(BaseService):
    """
    Chat eligibility is a student/university pair linked by at least one
    application record, whatever that application's status.
    """

    def __init__(
        self,
        db: Session,
        user_repository: Optional[UserRepository] = None,
        application_repository: Optional[ApplicationRepository] = None,
    ):
        super().__init__(db)
        self.user_repository = user_repository or UserRepository(db)
        self.application_repository = application_repository or ApplicationRepository(db)

    @BaseService.measure_operation("can_message")
    def can_message(self, user_a_id: str, user_b_id: str) -> bool:
        users = {str(u.id): u for u in self.user_repository.get_many([user_a_id, user_b_id])}
        user_a = users.get(str(user_a_id))
        user_b = users.get(str(user_b_id))
        if user_a is None or user_b is None:
            return False

        if user_a.is_student and user_b.is_university:
            student, university = user_a, user_b
        elif user_a.is_university and user_b.is_student:
            student, university = user_b, user_a
        else:
            return False

        student_profile_id = self.user_repository.get_student_profile_id(str(student.id))
        university_profile_id = self.user_repository.get_university_profile_id(str(university.id))
        if not student_profile_id or not university_profile_id:
            return False

        return self.application_repository.exists_between(student_profile_id, university_profile_id)
