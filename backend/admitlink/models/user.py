# backend/admitlink/models/user.py
"""
User model.

Accounts are owned by the identity collaborator; the messaging core only
reads the role and block flag, and touches ``last_active_at`` on
authenticated requests.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import RoleName
from ..database import Base


class User(Base):
    """
    Platform account.

    Attributes:
        id: ULID primary key
        email: Unique login address
        role: One of ``student``, ``university``, ``admin``
        is_blocked: Set by moderators; blocked users cannot authenticate
        last_active_at: Best-effort timestamp of the latest authenticated call
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(20), nullable=False, default=RoleName.STUDENT.value)
    is_blocked = Column(Boolean, nullable=False, default=False)
    last_active_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    student_profile = relationship("StudentProfile", back_populates="user", uselist=False)
    university_profile = relationship("UniversityProfile", back_populates="user", uselist=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role}, blocked={self.is_blocked})>"

    @property
    def is_student(self) -> bool:
        return self.role == RoleName.STUDENT.value

    @property
    def is_university(self) -> bool:
        return self.role == RoleName.UNIVERSITY.value
