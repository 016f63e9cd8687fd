# backend/admitlink/models/application.py
"""
Relationship ledger models: domain profiles and applications.

A student account owns one StudentProfile, a university account one
UniversityProfile. An Application links the two profiles; any application
record, whatever its status, makes the pair eligible to chat.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class StudentProfile(Base):
    """Student-side domain profile."""

    __tablename__ = "student_profiles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    user = relationship("User", back_populates="student_profile")


class UniversityProfile(Base):
    """University-side domain profile."""

    __tablename__ = "university_profiles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    user = relationship("User", back_populates="university_profile")


class Application(Base):
    """
    Application from a student profile to a university profile.

    Attributes:
        from_student: StudentProfile id
        to_university: UniversityProfile id
        status: Free-form workflow status (pending, accepted, rejected, ...)
        initiated_by: ``student`` for applications, ``university`` for invitations
    """

    __tablename__ = "applications"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    from_student = Column(
        String(26), ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False
    )
    to_university = Column(
        String(26), ForeignKey("university_profiles.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(String(20), nullable=False, default="pending")
    initiated_by = Column(String(20), nullable=False, default="student")
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (Index("idx_applications_pair", "from_student", "to_university"),)

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, status={self.status})>"
