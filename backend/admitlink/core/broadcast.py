# backend/admitlink/core/broadcast.py
"""
Broadcaster lifecycle for realtime room fan-out.

One Broadcaster per worker process multiplexes every room subscription over a
single backend connection (Redis pub/sub in production, ``memory://`` for a
single process). The instance is created in the application lifespan and
handed to the fan-out; nothing here is module-level state.
"""

import logging
from typing import Optional

from broadcaster import Broadcast

from .config import settings

logger = logging.getLogger(__name__)


def _redact(url: str) -> str:
    """Drop credentials from a backend URL before logging it."""
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.rsplit('@', 1)[-1]}"


async def connect_broadcast(url: Optional[str] = None) -> Broadcast:
    """
    Create and connect a Broadcaster.

    Call during application startup (in the lifespan manager).
    """
    backend_url = url or settings.broadcast_url
    broadcast = Broadcast(backend_url)
    await broadcast.connect()
    logger.info("[BROADCAST] Connected room transport: %s", _redact(backend_url))
    return broadcast


async def disconnect_broadcast(broadcast: Optional[Broadcast]) -> None:
    """Disconnect during application shutdown; tolerates ``None``."""
    if broadcast is None:
        return
    await broadcast.disconnect()
    logger.info("[BROADCAST] Disconnected room transport")
