# backend/admitlink/services/realtime/gateway.py
"""
Realtime gateway: one ``RealtimeConnection`` per authenticated socket.

Lifecycle:
- Handshake: the bearer token is validated before the socket is accepted;
  failures refuse the connection with close code 4401 (``Unauthorized``) or
  4403 (``Blocked``).
- Join: the connection subscribes to its personal room and to every
  conversation room the user belongs to, then sends ``connected``.
- Active: inbound JSON frames ``{"event", "data", "ack"?}`` are dispatched one
  at a time; a failing event is reported through its ack and never closes
  the connection. Binary frames are skipped.

Room subscriptions are pumped into a single outbound queue drained by one
sender task, so only that task ever writes to the socket.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import WebSocket
from sqlalchemy.orm import Session
from starlette.exceptions import WebSocketException

from ...auth import extract_bearer
from ...core.config import settings
from ...core.exceptions import DomainException, ForbiddenException
from ...database import get_db_session
from ...monitoring.prometheus_metrics import prometheus_metrics
from ..conversation_service import ConversationService
from ..identity_service import AuthenticatedUser, IdentityService
from ..message_service import (
    AppendedMessage,
    MessageService,
    publish_message_read,
    publish_new_message,
    serialize_message,
)
from ..notification_service import NotificationService, publish_notification
from .fanout import RoomFanOut, encode_frame
from .rooms import room_for_conversation, room_for_user

logger = logging.getLogger(__name__)

WS_4401_UNAUTHORIZED = 4401
WS_4403_FORBIDDEN = 4403

CONNECTED_EVENT = "connected"
ACK_EVENT = "ack"

EventHandler = Callable[[Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]]


def extract_socket_token(websocket: WebSocket) -> Optional[str]:
    """Handshake token: ``token`` query parameter first, then the Authorization header."""
    return extract_bearer(websocket.query_params.get("token")) or extract_bearer(
        websocket.headers.get("authorization")
    )


def _authenticate(token: Optional[str]) -> AuthenticatedUser:
    with get_db_session() as db:
        return IdentityService(db).authenticate(token)


async def authenticate_socket(websocket: WebSocket) -> AuthenticatedUser:
    """
    Resolve the socket's user or refuse the handshake.

    Raises:
        WebSocketException: 4401 for any credential problem, 4403 when blocked
    """
    token = extract_socket_token(websocket)
    try:
        return await asyncio.to_thread(_authenticate, token)
    except ForbiddenException:
        raise WebSocketException(code=WS_4403_FORBIDDEN, reason="Blocked")
    except DomainException:
        raise WebSocketException(code=WS_4401_UNAUTHORIZED, reason="Unauthorized")


class RealtimeConnection:
    """Connection-scoped protocol handler for one authenticated user."""

    def __init__(
        self,
        websocket: WebSocket,
        user: AuthenticatedUser,
        fanout: RoomFanOut,
        session_factory: Callable[[], Any] = get_db_session,
    ) -> None:
        self.websocket = websocket
        self.user = user
        self.fanout = fanout
        self.session_factory = session_factory
        self.rooms: Dict[str, asyncio.Task] = {}
        self._outbound: asyncio.Queue[str] = asyncio.Queue()
        self._subscriptions = AsyncExitStack()
        self._handlers: Dict[str, EventHandler] = {
            "conversation:join": self._on_conversation_join,
            "message:new": self._on_message_new,
            "message:read": self._on_message_read,
        }

    async def _run_in_session(self, func: Callable[[Session], Any]) -> Any:
        def call() -> Any:
            with self.session_factory() as db:
                return func(db)

        return await asyncio.to_thread(call)

    # Rooms

    async def join_room(self, room: str) -> None:
        """Subscribe to ``room``; joining twice is a no-op."""
        if room in self.rooms:
            return
        messages = await self._subscriptions.enter_async_context(
            self.fanout.transport.subscribe(room)
        )
        self.rooms[room] = asyncio.create_task(self._pump(room, messages))

    async def _pump(self, room: str, messages: Any) -> None:
        async for message in messages:
            await self._outbound.put(message)
        logger.debug("[GATEWAY] Subscription to %s ended", room)

    async def _sender(self) -> None:
        while True:
            message = await self._outbound.get()
            await self.websocket.send_text(message)

    async def send_event(self, event: str, payload: Any) -> None:
        await self._outbound.put(encode_frame(event, payload))

    async def _join_initial_rooms(self) -> None:
        conversation_ids: List[str] = await self._run_in_session(
            lambda db: ConversationService(db).list_conversation_ids(self.user.user_id)
        )
        await self.join_room(room_for_user(self.user.user_id))
        for conversation_id in conversation_ids:
            await self.join_room(room_for_conversation(conversation_id))

    # Inbound events

    async def _on_conversation_join(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        conversation_id = data.get("conversationId")
        if not conversation_id:
            return None
        if settings.strict_conversation_join:
            allowed = await self._run_in_session(
                lambda db: ConversationService(db).is_participant(
                    str(conversation_id), self.user.user_id
                )
            )
            if not allowed:
                return {"ok": False, "message": "Forbidden"}
        await self.join_room(room_for_conversation(str(conversation_id)))
        return {"ok": True}

    async def _notify(self, user_id: str, type: str, related_id: Optional[str] = None) -> None:
        notification = await self._run_in_session(
            lambda db: NotificationService(db).create(user_id, type, related_id)
        )
        await publish_notification(self.fanout, notification)

    async def _on_message_new(self, data: Dict[str, Any]) -> Dict[str, Any]:
        conversation_id = str(data.get("conversationId") or "")
        appended: AppendedMessage = await self._run_in_session(
            lambda db: MessageService(db).append(
                conversation_id, self.user.user_id, data.get("text"), data.get("attachments")
            )
        )
        await publish_new_message(self.fanout, appended, self._notify)
        return {"ok": True, "message": serialize_message(appended.message)}

    async def _on_message_read(self, data: Dict[str, Any]) -> Dict[str, Any]:
        conversation_id = str(data.get("conversationId") or "")
        message_id = str(data.get("messageId") or "")
        message = await self._run_in_session(
            lambda db: MessageService(db).mark_read(conversation_id, message_id, self.user.user_id)
        )
        await publish_message_read(self.fanout, conversation_id, message_id, self.user.user_id)
        return {"ok": True, "message": serialize_message(message)}

    async def handle_frame(self, raw: str) -> None:
        """Dispatch one inbound frame and acknowledge it when asked to."""
        try:
            frame = json.loads(raw)
        except ValueError:
            logger.warning("[GATEWAY] Ignoring malformed frame from %s", self.user.user_id)
            return
        if not isinstance(frame, dict):
            logger.warning("[GATEWAY] Ignoring non-object frame from %s", self.user.user_id)
            return

        event = frame.get("event")
        data = frame.get("data") if isinstance(frame.get("data"), dict) else {}
        ack = frame.get("ack")

        handler = self._handlers.get(str(event))
        result: Optional[Dict[str, Any]]
        if handler is None:
            result = {"ok": False, "message": "Unknown event"}
        else:
            try:
                result = await handler(data)
            except DomainException as exc:
                result = {"ok": False, "message": exc.message}
            except Exception as exc:
                logger.warning(
                    "[GATEWAY] %s failed for %s: %s",
                    event,
                    self.user.user_id,
                    exc,
                    exc_info=True,
                    extra={"event": event, "user_id": self.user.user_id},
                )
                result = {"ok": False, "message": "Internal server error"}

        if ack is not None and result is not None:
            await self.send_event_ack(ack, result)

    async def send_event_ack(self, ack: Any, result: Dict[str, Any]) -> None:
        await self._outbound.put(json.dumps({"event": ACK_EVENT, "ack": ack, "data": result}))

    # Lifecycle

    async def run(self) -> None:
        """Accept, join rooms, and serve frames until the client disconnects."""
        await self.websocket.accept()
        prometheus_metrics.connection_opened()
        sender = asyncio.create_task(self._sender())
        try:
            await self._join_initial_rooms()
            await self.send_event(
                CONNECTED_EVENT, {"userId": self.user.user_id, "rooms": list(self.rooms)}
            )
            logger.info(
                "[GATEWAY] %s connected with %d rooms",
                self.user.user_id,
                len(self.rooms),
                extra={"user_id": self.user.user_id},
            )
            while True:
                incoming = await self.websocket.receive()
                if incoming["type"] == "websocket.disconnect":
                    break
                if incoming.get("text") is not None:
                    await self.handle_frame(incoming["text"])
                else:
                    logger.warning("[GATEWAY] Ignoring binary frame from %s", self.user.user_id)
            logger.info("[GATEWAY] %s disconnected", self.user.user_id)
        finally:
            prometheus_metrics.connection_closed()
            for task in [*self.rooms.values(), sender]:
                task.cancel()
            await asyncio.gather(*self.rooms.values(), sender, return_exceptions=True)
            await self._subscriptions.aclose()
            self.rooms.clear()
