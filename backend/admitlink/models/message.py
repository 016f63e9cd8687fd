# backend/admitlink/models/message.py
"""
Message model for the chat system.

Messages are append-only. The only permitted mutation is the ``is_read``
transition from False to True, made by the participant who did not send it.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON as SAJSON
import ulid

from ..database import Base


class Message(Base):
    """Single chat message inside a conversation."""

    __tablename__ = "messages"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    conversation_id = Column(
        String(26), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    # Ordered list of opaque attachment references
    attachments = Column(SAJSON, nullable=False, default=list)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index("idx_messages_conversation_created", "conversation_id", "created_at"),
    )

    @property
    def sender(self) -> str:
        return str(self.sender_id)

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, conversation={self.conversation_id}, read={self.is_read})>"
