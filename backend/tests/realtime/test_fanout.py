"""
Tests for the room fan-out.

The fan-out is injected into services; these tests pin down its delivery
contract: frame shape, per-user de-duplication, and the guarantee that a
broken transport never surfaces to the caller.
"""

from datetime import datetime
import json
from unittest.mock import AsyncMock

import pytest

from admitlink.core.broadcast import connect_broadcast, disconnect_broadcast
from admitlink.services.realtime.fanout import (
    BroadcastRoomTransport,
    NullRoomTransport,
    RoomFanOut,
    encode_frame,
    null_fanout,
    unique_user_ids,
)
from admitlink.services.realtime.rooms import room_for_conversation, room_for_user


class ExplodingTransport:
    async def publish(self, room, message):
        raise ConnectionError("backend unavailable")

    def subscribe(self, room):
        raise NotImplementedError


class TestFrames:
    def test_room_names(self):
        assert room_for_user("01HUSER") == "user:01HUSER"
        assert room_for_conversation("01HCONV") == "conversation:01HCONV"

    def test_encode_frame_serialises_datetimes_as_utc(self):
        frame = json.loads(encode_frame("ping", {"at": datetime(2024, 3, 1, 9, 30)}))

        assert frame == {"event": "ping", "data": {"at": "2024-03-01T09:30:00+00:00"}}

    def test_unique_user_ids_keeps_first_seen_order(self):
        assert unique_user_ids(["b", "a", "b", "a", "c"]) == ["b", "a", "c"]


class TestRoomFanOut:
    @pytest.mark.asyncio
    async def test_publishes_encoded_frame_to_transport(self):
        transport = AsyncMock()

        await RoomFanOut(transport).emit_to_conversation("C1", "message:read", {"readBy": "U"})

        transport.publish.assert_awaited_once_with(
            "conversation:C1", encode_frame("message:read", {"readBy": "U"})
        )

    @pytest.mark.asyncio
    async def test_emit_to_users_deduplicates(self, recording_fanout, recording_transport):
        await recording_fanout.emit_to_users(["A", "A", "B"], "application:update", {"x": 1})

        assert recording_transport.events() == [
            ("user:A", "application:update"),
            ("user:B", "application:update"),
        ]

    @pytest.mark.asyncio
    async def test_emit_to_conversation(self, recording_fanout, recording_transport):
        await recording_fanout.emit_to_conversation("C1", "message:new", {"id": "M1"})

        assert recording_transport.published == [
            ("conversation:C1", {"event": "message:new", "data": {"id": "M1"}})
        ]

    @pytest.mark.asyncio
    async def test_null_fanout_is_silent(self):
        fanout = null_fanout()

        await fanout.emit_to_user("A", "notification:new", {})
        await fanout.emit_to_conversation("C1", "message:new", {})

        assert fanout.is_enabled is False
        assert isinstance(fanout.transport, NullRoomTransport)

    @pytest.mark.asyncio
    async def test_transport_failure_does_not_raise(self, caplog):
        fanout = RoomFanOut(ExplodingTransport())

        await fanout.emit_to_user("A", "notification:new", {"id": "N1"})

        assert fanout.is_enabled is True
        assert "Failed to publish notification:new" in caplog.text

    @pytest.mark.asyncio
    async def test_unserialisable_payload_does_not_raise(
        self, recording_fanout, recording_transport
    ):
        await recording_fanout.emit_to_user("A", "notification:new", {"blob": object()})

        assert recording_transport.published == []


class TestBroadcastRoomTransport:
    @pytest.mark.asyncio
    async def test_subscriber_receives_published_frame(self):
        broadcast = await connect_broadcast("memory://")
        try:
            fanout = RoomFanOut(BroadcastRoomTransport(broadcast))
            async with fanout.transport.subscribe("user:A") as messages:
                await fanout.emit_to_user("A", "notification:new", {"id": "N1"})
                frame = json.loads(await messages.__anext__())
        finally:
            await disconnect_broadcast(broadcast)

        assert frame == {"event": "notification:new", "data": {"id": "N1"}}
