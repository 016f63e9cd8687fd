# backend/admitlink/repositories/conversation_repository.py
"""
Conversation Repository for per-user-pair messaging.

Provides data access methods for conversations between two users.
Pair uniqueness is enforced by the ``uq_conversations_participant_pair``
constraint; ``get_or_create`` leans on it with a conflict-ignoring insert so
concurrent callers for the same pair converge on a single row.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, cast

from sqlalchemy import insert, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException
from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database.session_utils import supports_row_locks
from ..models.conversation import Conversation, canonical_pair
from .base_repository import BaseRepository

_PAIR_COLUMNS = ["participant_low", "participant_high"]


class ConversationRepository(BaseRepository[Conversation]):
    """
    Repository for Conversation entity operations.

    Handles all database operations for conversations including:
    - Finding or creating the conversation for a user pair
    - Listing conversations for a user by latest activity
    - Locking a conversation row while a message is appended
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        super().__init__(db, Conversation)

    def find_by_pair(self, user_a: str, user_b: str) -> Optional[Conversation]:
        """
        Find the conversation between two users, in either argument order.

        Args:
            user_a: One participant's user ID
            user_b: The other participant's user ID

        Returns:
            The conversation if found, None otherwise
        """
        low, high = canonical_pair(user_a, user_b)
        result = (
            self.db.query(Conversation)
            .filter(
                Conversation.participant_low == low,
                Conversation.participant_high == high,
            )
            .first()
        )
        return cast(Optional[Conversation], result)

    def get_or_create(
        self,
        user_a: str,
        user_b: str,
        related_application: Optional[str] = None,
    ) -> tuple[Conversation, bool]:
        """
        Get an existing conversation or create a new one.

        Safe to call concurrently for the same pair: the insert ignores a
        conflict on the pair constraint and the row is always re-read, so
        every caller sees the single winning conversation. An existing
        conversation is returned untouched (``related_application`` is only
        written on creation).

        Returns:
            Tuple of (conversation, created) where created is True if new
        """
        existing = self.find_by_pair(user_a, user_b)
        if existing:
            return existing, False

        low, high = canonical_pair(user_a, user_b)
        now = utc_now()
        values: Dict[str, Any] = {
            "id": generate_ulid(),
            "participant_low": low,
            "participant_high": high,
            "related_application": related_application,
            "created_at": now,
            "updated_at": now,
        }

        dialect = self.dialect_name
        if dialect == "postgresql":
            self.db.execute(
                pg_insert(Conversation).values(**values).on_conflict_do_nothing(
                    index_elements=_PAIR_COLUMNS
                )
            )
        elif dialect == "sqlite":
            self.db.execute(
                sqlite_insert(Conversation).values(**values).on_conflict_do_nothing(
                    index_elements=_PAIR_COLUMNS
                )
            )
        else:
            # Generic fallback: insert inside a savepoint, absorb the duplicate
            savepoint = self.db.begin_nested()
            try:
                self.db.execute(insert(Conversation).values(**values))
                savepoint.commit()
            except IntegrityError:
                savepoint.rollback()
                self.logger.info("Conversation pair %s/%s created concurrently", low, high)

        conversation = self.find_by_pair(low, high)
        if conversation is None:
            raise RepositoryException("Conversation missing after find-or-create")
        return conversation, conversation.id == values["id"]

    def get_for_update(self, conversation_id: str) -> Optional[Conversation]:
        """
        Load a conversation and lock its row until the transaction ends.

        SQLite has no row locks; there the ULID id breaks any created_at tie.
        """
        query: Query = (
            self.db.query(Conversation)
            .filter(Conversation.id == conversation_id)
            .populate_existing()
        )
        if supports_row_locks(self.db):
            query = query.with_for_update()
        return cast(Optional[Conversation], query.first())

    def find_for_user(self, user_id: str, limit: int = 25, offset: int = 0) -> List[Conversation]:
        """
        Find conversations where a user is a participant.

        Returns:
            Conversations ordered by latest activity (updated_at desc)
        """
        query: Query = (
            self._participant_query(user_id)
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return cast(List[Conversation], self._execute_query(query))

    def count_for_user(self, user_id: str) -> int:
        """Count conversations where a user is a participant."""
        return cast(int, self._participant_query(user_id).count())

    def list_ids_for_user(self, user_id: str) -> Sequence[str]:
        """Return the ids of every conversation the user participates in."""
        rows = (
            self.db.query(Conversation.id)
            .filter(
                or_(
                    Conversation.participant_low == user_id,
                    Conversation.participant_high == user_id,
                )
            )
            .all()
        )
        return [str(row[0]) for row in rows]

    def touch_updated_at(self, conversation: Conversation, timestamp: datetime) -> None:
        """Bump the activity timestamp used for "most recently active" listings."""
        conversation.updated_at = timestamp
        self.db.flush()

    def _participant_query(self, user_id: str) -> Query:
        return self.db.query(Conversation).filter(
            or_(
                Conversation.participant_low == user_id,
                Conversation.participant_high == user_id,
            )
        )
