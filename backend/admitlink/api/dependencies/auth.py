# backend/admitlink/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The token lookup runs through ``asyncio.to_thread`` so the user query never
blocks the event loop; the ``last_active_at`` stamp is deferred to a
background task after the response.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from ...core.enums import RoleName
from ...core.exceptions import ForbiddenException, UnauthorizedException
from ...database import get_db, get_db_session
from ...services.identity_service import AuthenticatedUser, IdentityService

logger = logging.getLogger(__name__)


def _touch_last_active(user_id: str) -> None:
    with get_db_session() as db:
        IdentityService(db).touch_last_active(user_id)


async def get_current_user(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> AuthenticatedUser:
    """Resolve ``Authorization: Bearer <token>`` to the acting user."""
    header = request.headers.get("authorization") or ""
    if not header.startswith("Bearer "):
        raise UnauthorizedException("Unauthorized")

    token = header.split(" ", 1)[1].strip()
    user = await asyncio.to_thread(IdentityService(db).authenticate, token)
    background_tasks.add_task(_touch_last_active, user.user_id)
    return user


def require_roles(*roles: str) -> Callable[..., Awaitable[AuthenticatedUser]]:
    """Dependency factory allowing only the listed roles."""
    allowed = {getattr(role, "value", role) for role in roles}

    async def _check(
        current_user: AuthenticatedUser = Depends(get_current_user),
    ) -> AuthenticatedUser:
        if current_user.role not in allowed:
            logger.info(
                "Role %s denied (allowed: %s)",
                current_user.role,
                sorted(allowed),
                extra={"user_id": current_user.user_id},
            )
            raise ForbiddenException("Forbidden")
        return current_user

    return _check


require_chat_participant = require_roles(RoleName.STUDENT, RoleName.UNIVERSITY)
