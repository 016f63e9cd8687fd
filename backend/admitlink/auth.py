"""Bearer token helpers shared by the REST dependencies and the socket gateway."""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

import jwt

from .core.config import settings

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def _secret_value(secret_obj: Any) -> str:
    getter = getattr(secret_obj, "get_secret_value", None)
    if callable(getter):
        return cast(str, getter())
    return cast(str, secret_obj)


def create_access_token(
    user_id: str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed access token.

    Args:
        user_id: Stored in the ``sub`` claim
        role: Stored in the ``role`` claim
        expires_delta: Optional lifetime, defaults to ``access_token_expire_minutes``

    Returns:
        str: The encoded JWT
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )
    to_encode: Dict[str, Any] = {"sub": str(user_id), "role": role, "exp": expire}
    return cast(str, jwt.encode(to_encode, _secret_value(settings.secret_key), settings.algorithm))


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a token; raises ``jwt.PyJWTError`` subclasses on failure."""
    payload = jwt.decode(
        token,
        _secret_value(settings.secret_key),
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )
    return cast(Dict[str, Any], payload)


def extract_bearer(value: Optional[str]) -> Optional[str]:
    """
    Strip an optional ``Bearer`` scheme from a credential string.

    Returns None for empty values so callers can fall through to the next
    credential source.
    """
    if not value:
        return None
    value = value.strip()
    if value.lower().startswith(BEARER_PREFIX):
        value = value[len(BEARER_PREFIX):].strip()
    return value or None
