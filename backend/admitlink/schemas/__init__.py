from .chat import (
    ConversationListResponse,
    ConversationResponse,
    MessageListResponse,
    MessageResponse,
    SendMessageRequest,
    StartConversationRequest,
)
from .notifications import NotificationListResponse, NotificationResponse
from .pagination import PaginationMeta

__all__ = [
    "ConversationListResponse",
    "ConversationResponse",
    "MessageListResponse",
    "MessageResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "PaginationMeta",
    "SendMessageRequest",
    "StartConversationRequest",
]
