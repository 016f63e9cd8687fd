# backend/admitlink/routes/v1/notifications.py
"""Notification inbox routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_notification_service
from ...core.exceptions import NotFoundException
from ...schemas.notifications import NotificationListResponse, NotificationResponse
from ...schemas.pagination import PaginationMeta
from ...services.identity_service import AuthenticatedUser
from ...services.notification_service import NotificationService

router = APIRouter(tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    """List notifications for the current user, newest first."""
    result = service.list_for_user(current_user.user_id, page=page, limit=limit)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(item) for item in result.items],
        pagination=PaginationMeta.from_page(result),
    )


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    notification = service.mark_read(current_user.user_id, notification_id)
    if notification is None:
        raise NotFoundException("Notification not found")
    return NotificationResponse.model_validate(notification)
