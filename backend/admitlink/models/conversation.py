# backend/admitlink/models/conversation.py
"""
Conversation model for per-user-pair messaging.

Each unordered pair of users has at most one conversation. The pair is
stored sorted (``participant_low`` < ``participant_high``) and a unique
constraint on the two columns is the natural key that find-or-create
relies on.

Design decisions:
- ``updated_at`` is a plain scalar bumped in the same transaction as every
  message insert; the conversation does not point at its latest message
- ``related_application`` is fixed at creation (first write wins)
- Conversations are never deleted
"""

from datetime import datetime, timezone
from typing import List, Tuple

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


def canonical_pair(user_a: str, user_b: str) -> Tuple[str, str]:
    """Return the sorted participant pair used as the conversation key."""
    first, second = sorted((str(user_a), str(user_b)))
    return first, second


class Conversation(Base):
    """
    Conversation between exactly two users.

    Attributes:
        id: ULID primary key
        participant_low: Lexicographically smaller participant id
        participant_high: Lexicographically larger participant id
        related_application: Optional application that prompted the chat
        created_at: When the conversation was created
        updated_at: Time of the latest message (creation time until then)
    """

    __tablename__ = "conversations"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    participant_low = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    participant_high = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    related_application = Column(String(26), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    messages = relationship(
        "Message",
        back_populates="conversation",
        order_by="Message.created_at",
        lazy="noload",
    )

    __table_args__ = (
        UniqueConstraint(
            "participant_low", "participant_high", name="uq_conversations_participant_pair"
        ),
        Index("idx_conversations_low_updated", "participant_low", "updated_at"),
        Index("idx_conversations_high_updated", "participant_high", "updated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Conversation(id={self.id}, participants=({self.participant_low}, "
            f"{self.participant_high}))>"
        )

    @property
    def participants(self) -> List[str]:
        return [str(self.participant_low), str(self.participant_high)]

    def is_participant(self, user_id: str) -> bool:
        """
        Check if a user is a participant in this conversation.

        Args:
            user_id: The ID to check

        Returns:
            True if the user is one of the two participants
        """
        return str(user_id) in self.participants
