# backend/admitlink/services/identity_service.py
"""
Identity Gate.

Resolves a bearer credential to the acting user. Runs once per REST request
and once per socket handshake.
"""

from dataclasses import dataclass
from typing import Optional

import jwt
from sqlalchemy.orm import Session

from ..auth import decode_access_token
from ..core.exceptions import ForbiddenException, UnauthorizedException
from ..repositories.user_repository import UserRepository
from .base import BaseService


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity attached to a request or a socket connection."""

    user_id: str
    role: str
    email: str
    is_blocked: bool = False


class IdentityService(BaseService):
    """Validates access tokens against the user directory."""

    def __init__(self, db: Session, user_repository: Optional[UserRepository] = None):
        super().__init__(db)
        self.user_repository = user_repository or UserRepository(db)

    @BaseService.measure_operation("authenticate")
    def authenticate(self, token: Optional[str]) -> AuthenticatedUser:
        """
        Resolve ``token`` to an active user.

        Raises:
            UnauthorizedException: token missing, undecodable, expired, or
                pointing at an unknown user
            ForbiddenException: the account is blocked
        """
        if not token:
            raise UnauthorizedException("Unauthorized")

        try:
            payload = decode_access_token(token)
        except jwt.PyJWTError as exc:
            self.logger.debug("Rejected token: %s", exc)
            raise UnauthorizedException("Invalid or expired token")

        user_id = payload.get("sub")
        if not user_id:
            raise UnauthorizedException("Invalid or expired token")

        user = self.user_repository.get_by_id(str(user_id))
        if user is None:
            raise UnauthorizedException("Unauthorized")
        if user.is_blocked:
            raise ForbiddenException("Account is blocked", code="Blocked")

        return AuthenticatedUser(
            user_id=str(user.id),
            role=str(user.role),
            email=str(user.email),
            is_blocked=bool(user.is_blocked),
        )

    def touch_last_active(self, user_id: str) -> None:
        """Best-effort activity stamp; never raises."""
        try:
            with self.transaction():
                self.user_repository.touch_last_active(user_id)
        except Exception as exc:
            self.logger.debug("last_active_at update skipped for %s: %s", user_id, exc)
