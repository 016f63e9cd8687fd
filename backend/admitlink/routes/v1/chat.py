# backend/admitlink/routes/v1/chat.py
"""
Chat routes.

Endpoints (mounted under /api/chat):
    POST /start                          -> Start or reopen a conversation
    GET /conversations                   -> List the caller's conversations
    GET /{conversation_id}/messages      -> Message history, newest first
    POST /{conversation_id}/messages     -> Send a message

Routes have no direct DB access; everything goes through the service layer.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import require_chat_participant
from ...api.dependencies.services import (
    get_conversation_service,
    get_message_service,
)
from ...schemas.chat import (
    ConversationListResponse,
    ConversationResponse,
    MessageListResponse,
    MessageResponse,
    SendMessageRequest,
    StartConversationRequest,
)
from ...schemas.pagination import PaginationMeta
from ...services.conversation_service import ConversationService
from ...services.identity_service import AuthenticatedUser
from ...services.message_service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/start", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
def start_conversation(
    payload: StartConversationRequest,
    current_user: AuthenticatedUser = Depends(require_chat_participant),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationResponse:
    """Return the conversation with ``participantUserId``, creating it on first contact."""
    conversation, _created = service.start_or_get(
        current_user.user_id,
        payload.participant_user_id,
        related_application=payload.related_application,
    )
    return ConversationResponse.model_validate(conversation)


@router.get("/conversations", response_model=ConversationListResponse)
def list_conversations(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    current_user: AuthenticatedUser = Depends(require_chat_participant),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationListResponse:
    result = service.list_for_user(current_user.user_id, page=page, limit=limit)
    return ConversationListResponse(
        items=[ConversationResponse.model_validate(item) for item in result.items],
        pagination=PaginationMeta.from_page(result),
    )


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
def list_messages(
    conversation_id: str,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    current_user: AuthenticatedUser = Depends(require_chat_participant),
    service: MessageService = Depends(get_message_service),
) -> MessageListResponse:
    """Most recent first; clients reverse for chronological display."""
    result = service.list_for_conversation(
        conversation_id, current_user.user_id, page=page, limit=limit
    )
    return MessageListResponse(
        items=[MessageResponse.model_validate(item) for item in result.items],
        pagination=PaginationMeta.from_page(result),
    )


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: str,
    payload: SendMessageRequest,
    current_user: AuthenticatedUser = Depends(require_chat_participant),
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    """Same path as a socket ``message:new``: persist, fan out, notify."""
    message = await service.send(
        conversation_id, current_user.user_id, payload.text, payload.attachments
    )
    return MessageResponse.model_validate(message)
