# backend/admitlink/services/realtime/fanout.py
"""
Presence & room fan-out.

Routes server events to rooms. Services receive a ``RoomFanOut`` instance
explicitly; deployments without a realtime transport (and most unit tests)
use one built on ``NullRoomTransport``, which silently drops everything.

Every frame published to a room is the JSON text
``{"event": <name>, "data": <payload>}``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date, datetime
import json
import logging
from typing import Any, AsyncIterator, Iterable, List, Optional, Protocol

from broadcaster import Broadcast

from ...core.timezone_utils import ensure_utc
from ...monitoring.prometheus_metrics import prometheus_metrics
from .rooms import room_for_conversation, room_for_user

logger = logging.getLogger(__name__)


class RoomTransport(Protocol):
    """Pub/sub carrier for room frames."""

    async def publish(self, room: str, message: str) -> None:
        """Deliver ``message`` to every subscriber of ``room``."""

    def subscribe(self, room: str) -> Any:
        """Async context manager yielding an async iterator of message strings."""


class BroadcastRoomTransport:
    """RoomTransport backed by a connected ``broadcaster.Broadcast``."""

    def __init__(self, broadcast: Broadcast) -> None:
        self._broadcast = broadcast

    async def publish(self, room: str, message: str) -> None:
        await self._broadcast.publish(channel=room, message=message)

    @asynccontextmanager
    async def subscribe(self, room: str) -> AsyncIterator[AsyncIterator[str]]:
        async with self._broadcast.subscribe(channel=room) as subscriber:

            async def messages() -> AsyncIterator[str]:
                async for event in subscriber:
                    # Broadcaster yields Event objects with .channel and .message
                    yield event.message

            yield messages()


class NullRoomTransport:
    """Drops every publish; subscriptions never yield."""

    async def publish(self, room: str, message: str) -> None:
        return None

    @asynccontextmanager
    async def subscribe(self, room: str) -> AsyncIterator[AsyncIterator[str]]:
        async def messages() -> AsyncIterator[str]:
            return
            yield  # pragma: no cover

        yield messages()


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_frame(event: str, payload: Any) -> str:
    return json.dumps({"event": event, "data": payload}, default=_json_default)


def unique_user_ids(user_ids: Iterable[Any]) -> List[str]:
    """String-normalised ids in first-seen order, duplicates removed."""
    return list(dict.fromkeys(str(user_id) for user_id in user_ids))


class RoomFanOut:
    """
    Best-effort event delivery to user and conversation rooms.

    Emit methods never raise: a transport failure is logged and the
    caller's operation carries on.
    """

    def __init__(self, transport: Optional[RoomTransport] = None) -> None:
        self.transport: RoomTransport = transport or NullRoomTransport()

    @property
    def is_enabled(self) -> bool:
        return not isinstance(self.transport, NullRoomTransport)

    async def _emit(self, room: str, event: str, payload: Any) -> None:
        try:
            message = encode_frame(event, payload)
            await self.transport.publish(room, message)
            prometheus_metrics.inc_realtime_event(event)
        except Exception as exc:
            logger.error(
                "[FANOUT] Failed to publish %s to %s: %s",
                event,
                room,
                exc,
                extra={"room": room, "event": event},
            )

    async def emit_to_user(self, user_id: str, event: str, payload: Any) -> None:
        await self._emit(room_for_user(str(user_id)), event, payload)

    async def emit_to_users(self, user_ids: Iterable[Any], event: str, payload: Any) -> None:
        for user_id in unique_user_ids(user_ids):
            await self.emit_to_user(user_id, event, payload)

    async def emit_to_conversation(self, conversation_id: str, event: str, payload: Any) -> None:
        await self._emit(room_for_conversation(str(conversation_id)), event, payload)


def null_fanout() -> RoomFanOut:
    return RoomFanOut(NullRoomTransport())
