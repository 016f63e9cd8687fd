# backend/admitlink/services/conversation_service.py
"""
Conversation Service for per-user-pair messaging.

Handles business logic for the conversation store including:
- Starting (or reopening) the single conversation for a user pair
- Listing a user's conversations by latest activity
- Participant checks shared by the message paths and the socket gateway
"""

from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import ActivityAction
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..core.pagination import Page, PageRequest
from ..models.conversation import Conversation
from ..repositories.conversation_repository import ConversationRepository
from .activity_service import ActivityService
from .base import BaseService
from .relationship_service import RelationshipService


class ConversationService(BaseService):
    """
    Service for managing per-user-pair conversations.

    Eligibility is delegated to the RelationshipService; pair uniqueness is
    guaranteed by the repository's conflict-ignoring insert.
    """

    def __init__(
        self,
        db: Session,
        conversation_repository: Optional[ConversationRepository] = None,
        relationship_service: Optional[RelationshipService] = None,
        activity_service: Optional[ActivityService] = None,
    ):
        super().__init__(db)
        self.conversation_repository = conversation_repository or ConversationRepository(db)
        self.relationship_service = relationship_service or RelationshipService(db)
        self.activity_service = activity_service or ActivityService(db)

    @BaseService.measure_operation("start_conversation")
    def start_or_get(
        self,
        user_id: str,
        participant_user_id: Optional[str],
        related_application: Optional[str] = None,
    ) -> Tuple[Conversation, bool]:
        """
        Return the conversation between two users, creating it if needed.

        An existing conversation is returned unchanged; ``related_application``
        only applies on creation.

        Returns:
            Tuple of (conversation, created)

        Raises:
            ValidationException: participant missing or equal to the caller
            ForbiddenException: the pair is not a related student/university
        """
        if not participant_user_id:
            raise ValidationException("participantUserId is required")
        if str(user_id) == str(participant_user_id):
            raise ValidationException("Cannot start conversation with yourself")

        if not self.relationship_service.can_message(user_id, participant_user_id):
            raise ForbiddenException(
                "Conversation not allowed without student-university relationship"
            )

        with self.transaction():
            conversation, created = self.conversation_repository.get_or_create(
                user_id, participant_user_id, related_application=related_application
            )
            if created:
                for participant in conversation.participants:
                    self.activity_service.track(
                        participant,
                        ActivityAction.CONVERSATION_STARTED.value,
                        related_id=str(conversation.id),
                    )

        if created:
            self.log_operation(
                "conversation_started", conversation_id=conversation.id, started_by=user_id
            )
        return conversation, created

    @BaseService.measure_operation("list_conversations")
    def list_for_user(
        self, user_id: str, page: Optional[int] = None, limit: Optional[int] = None
    ) -> Page[Conversation]:
        """Page of the user's conversations, most recently active first."""
        request = PageRequest.normalize(page, limit, settings.conversation_page_size)
        items = self.conversation_repository.find_for_user(
            user_id, limit=request.limit, offset=request.offset
        )
        total = self.conversation_repository.count_for_user(user_id)
        return Page(items=items, total=total, request=request)

    def get_for_participant(self, conversation_id: str, user_id: str) -> Conversation:
        """
        Load a conversation the user takes part in.

        Raises:
            NotFoundException: no such conversation
            ForbiddenException: the user is not a participant
        """
        conversation = self.conversation_repository.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundException("Conversation not found")
        self.assert_participant(conversation, user_id)
        return conversation

    @staticmethod
    def assert_participant(conversation: Conversation, user_id: str) -> None:
        if not conversation.is_participant(user_id):
            raise ForbiddenException("Forbidden")

    def is_participant(self, conversation_id: str, user_id: str) -> bool:
        conversation = self.conversation_repository.get_by_id(conversation_id)
        return conversation is not None and conversation.is_participant(user_id)

    def list_conversation_ids(self, user_id: str) -> List[str]:
        """Every conversation id the user takes part in (socket join set)."""
        return list(self.conversation_repository.list_ids_for_user(user_id))
