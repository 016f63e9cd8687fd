# backend/admitlink/repositories/message_repository.py
"""
Message Repository.

Messages are append-only; ordering within a conversation is by
``created_at`` with the ULID id as a tiebreaker.
"""

from datetime import datetime
from typing import Any, List, Optional, Sequence, cast

from sqlalchemy.orm import Query, Session

from ..models.message import Message
from .base_repository import BaseRepository


class MessageRepository(BaseRepository[Message]):
    """Repository for chat messages."""

    def __init__(self, db: Session):
        super().__init__(db, Message)

    def create_message(
        self,
        conversation_id: str,
        sender_id: str,
        text: str,
        attachments: Sequence[Any],
        created_at: datetime,
    ) -> Message:
        """Insert an unread message (no commit)."""
        return self.create(
            conversation_id=conversation_id,
            sender_id=sender_id,
            text=text,
            attachments=list(attachments),
            is_read=False,
            created_at=created_at,
        )

    def get_in_conversation(self, conversation_id: str, message_id: str) -> Optional[Message]:
        """Fetch a message only if it belongs to ``conversation_id``."""
        return self.find_one_by(id=message_id, conversation_id=conversation_id)

    def find_for_conversation(
        self, conversation_id: str, limit: int = 50, offset: int = 0
    ) -> List[Message]:
        """Most recent first."""
        query: Query = (
            self.db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return cast(List[Message], self._execute_query(query))

    def count_for_conversation(self, conversation_id: str) -> int:
        return self.count(conversation_id=conversation_id)

    def mark_read(self, message: Message) -> Message:
        message.is_read = True
        self.db.flush()
        return message
