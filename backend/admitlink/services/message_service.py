# backend/admitlink/services/message_service.py
"""
Message Service for the chat system.

Append-only message log per conversation. The synchronous methods own the
database work; ``send`` and ``read`` wrap them for async callers (REST routes
and the socket gateway) and then fan the result out to the conversation room.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import ActivityAction, NotificationType
from ..core.exceptions import NotFoundException, ValidationException
from ..core.pagination import Page, PageRequest
from ..core.timezone_utils import ensure_utc, utc_now
from ..models.message import Message
from ..repositories.conversation_repository import ConversationRepository
from ..repositories.message_repository import MessageRepository
from ..schemas.chat import MessageResponse
from .activity_service import ActivityService
from .base import BaseService
from .conversation_service import ConversationService
from .notification_service import NotificationService
from .realtime.fanout import RoomFanOut, null_fanout

MESSAGE_NEW_EVENT = "message:new"
MESSAGE_READ_EVENT = "message:read"

# (user_id, type, related_id) -> persisted notification, pushed to the owner
Notifier = Callable[[str, str, Optional[str]], Awaitable[Any]]

# Smallest step that keeps created_at strictly increasing per conversation
_TICK = timedelta(microseconds=1)


def serialize_message(message: Message) -> Dict[str, Any]:
    return MessageResponse.model_validate(message).model_dump(by_alias=True, mode="json")


@dataclass
class AppendedMessage:
    """Result of an append plus who still needs to hear about it."""

    message: Message
    recipient_ids: List[str] = field(default_factory=list)


async def publish_new_message(
    fanout: RoomFanOut, appended: AppendedMessage, notify: Notifier
) -> None:
    """Fan ``message:new`` out to the conversation room, then notify each recipient."""
    message = appended.message
    await fanout.emit_to_conversation(
        str(message.conversation_id), MESSAGE_NEW_EVENT, serialize_message(message)
    )
    for recipient_id in appended.recipient_ids:
        await notify(recipient_id, NotificationType.MESSAGE.value, str(message.id))


async def publish_message_read(
    fanout: RoomFanOut, conversation_id: str, message_id: str, reader_id: str
) -> None:
    await fanout.emit_to_conversation(
        str(conversation_id),
        MESSAGE_READ_EVENT,
        {
            "conversationId": str(conversation_id),
            "messageId": str(message_id),
            "readBy": str(reader_id),
        },
    )


class MessageService(BaseService):
    """Appends, lists and acknowledges chat messages."""

    def __init__(
        self,
        db: Session,
        fanout: Optional[RoomFanOut] = None,
        conversation_repository: Optional[ConversationRepository] = None,
        message_repository: Optional[MessageRepository] = None,
        notification_service: Optional[NotificationService] = None,
        activity_service: Optional[ActivityService] = None,
        conversation_service: Optional[ConversationService] = None,
    ):
        super().__init__(db)
        self.fanout = fanout or null_fanout()
        self.conversation_repository = conversation_repository or ConversationRepository(db)
        self.message_repository = message_repository or MessageRepository(db)
        self.activity_service = activity_service or ActivityService(db)
        self.notification_service = notification_service or NotificationService(
            db, fanout=self.fanout, activity_service=self.activity_service
        )
        self.conversation_service = conversation_service or ConversationService(
            db,
            conversation_repository=self.conversation_repository,
            activity_service=self.activity_service,
        )

    @staticmethod
    def _clean_text(text: Any) -> str:
        trimmed = str(text or "").strip()
        if not trimmed:
            raise ValidationException("Message text is required")
        if len(trimmed) > settings.max_message_length:
            raise ValidationException(
                f"Message text must be at most {settings.max_message_length} characters"
            )
        return trimmed

    @staticmethod
    def _clean_attachments(attachments: Optional[Sequence[Any]]) -> List[Any]:
        if attachments is None:
            return []
        if not isinstance(attachments, (list, tuple)):
            raise ValidationException("attachments must be a list")
        return list(attachments)

    @BaseService.measure_operation("append_message")
    def append(
        self,
        conversation_id: str,
        sender_id: str,
        text: Any,
        attachments: Optional[Sequence[Any]] = None,
    ) -> AppendedMessage:
        """
        Append a message and bump the conversation's activity timestamp.

        The conversation row stays locked until commit, so concurrent appends
        to one conversation get strictly increasing ``created_at`` values.

        Raises:
            ValidationException: text empty after trimming, or too long
            NotFoundException: conversation missing
            ForbiddenException: sender is not a participant
        """
        trimmed = self._clean_text(text)
        items = self._clean_attachments(attachments)

        with self.transaction():
            conversation = self.conversation_repository.get_for_update(conversation_id)
            if conversation is None:
                raise NotFoundException("Conversation not found")
            ConversationService.assert_participant(conversation, sender_id)

            created_at = max(utc_now(), ensure_utc(conversation.updated_at) + _TICK)
            message = self.message_repository.create_message(
                conversation_id=str(conversation.id),
                sender_id=str(sender_id),
                text=trimmed,
                attachments=items,
                created_at=created_at,
            )
            self.conversation_repository.touch_updated_at(conversation, created_at)
            self.activity_service.track(
                str(sender_id),
                ActivityAction.MESSAGE_SENT.value,
                related_id=str(message.id),
                metadata={"conversationId": str(conversation.id)},
            )
            recipients = [p for p in conversation.participants if p != str(sender_id)]

        return AppendedMessage(message=message, recipient_ids=recipients)

    @BaseService.measure_operation("list_messages")
    def list_for_conversation(
        self,
        conversation_id: str,
        user_id: str,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[Message]:
        """Page of messages, most recent first."""
        request = PageRequest.normalize(page, limit, settings.message_page_size)
        self.conversation_service.get_for_participant(conversation_id, user_id)

        items = self.message_repository.find_for_conversation(
            conversation_id, limit=request.limit, offset=request.offset
        )
        total = self.message_repository.count_for_conversation(conversation_id)
        return Page(items=items, total=total, request=request)

    @BaseService.measure_operation("mark_message_read")
    def mark_read(self, conversation_id: str, message_id: str, reader_id: str) -> Message:
        """
        Mark a message read on behalf of ``reader_id``.

        A sender reading their own message is a no-op, as is re-reading.
        """
        with self.transaction():
            self.conversation_service.get_for_participant(conversation_id, reader_id)

            message = self.message_repository.get_in_conversation(conversation_id, message_id)
            if message is None:
                raise NotFoundException("Message not found")

            if str(message.sender_id) != str(reader_id) and not message.is_read:
                self.message_repository.mark_read(message)

            self.activity_service.track(
                str(reader_id),
                ActivityAction.MESSAGE_READ.value,
                related_id=str(message.id),
                metadata={"conversationId": str(conversation_id)},
            )
        return message

    @BaseService.measure_operation("send_message")
    async def send(
        self,
        conversation_id: str,
        sender_id: str,
        text: Any,
        attachments: Optional[Sequence[Any]] = None,
    ) -> Message:
        """Append, fan ``message:new`` out to the room, notify the other participant."""
        appended = await asyncio.to_thread(
            self.append, conversation_id, sender_id, text, attachments
        )
        await publish_new_message(self.fanout, appended, self.notification_service.enqueue)
        return appended.message

    @BaseService.measure_operation("read_message")
    async def read(self, conversation_id: str, message_id: str, reader_id: str) -> Message:
        message = await asyncio.to_thread(self.mark_read, conversation_id, message_id, reader_id)
        await publish_message_read(self.fanout, conversation_id, message_id, reader_id)
        return message
