# backend/admitlink/schemas/notifications.py
"""Schemas for notification inbox endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import ConfigDict

from ._strict_base import StrictModel, UtcDatetime
from .pagination import PaginatedResponse


class NotificationResponse(StrictModel):
    """Notification inbox entry."""

    id: str
    user_id: str
    type: str
    related_id: Optional[str] = None
    is_read: bool
    created_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True, **StrictModel.model_config)


class NotificationListResponse(PaginatedResponse[NotificationResponse]):
    """Paginated notification response."""
