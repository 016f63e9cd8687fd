# backend/admitlink/schemas/chat.py
"""Pydantic schemas for conversations and messages."""

from typing import Any, List, Optional

from pydantic import ConfigDict, Field

from ._strict_base import StrictModel, StrictRequestModel, UtcDatetime
from .pagination import PaginatedResponse


class StartConversationRequest(StrictRequestModel):
    """Request to open (or reopen) the conversation with another user."""

    # Optional here so a missing id reports the domain message
    participant_user_id: Optional[str] = None
    related_application: Optional[str] = None


class SendMessageRequest(StrictRequestModel):
    # Length is checked after trimming by MessageService
    text: str = Field(..., min_length=1)
    attachments: List[Any] = Field(default_factory=list)


class ConversationResponse(StrictModel):
    """Conversation between two users."""

    id: str
    participants: List[str]
    related_application: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True, **StrictModel.model_config)


class MessageResponse(StrictModel):
    """A single chat message as sent to clients."""

    id: str
    conversation_id: str
    sender: str
    text: str
    attachments: List[Any] = Field(default_factory=list)
    is_read: bool
    created_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True, **StrictModel.model_config)


class ConversationListResponse(PaginatedResponse[ConversationResponse]):
    pass


class MessageListResponse(PaginatedResponse[MessageResponse]):
    pass
