"""Socket endpoint for the realtime gateway."""

from fastapi import APIRouter, Depends, WebSocket

from ...api.dependencies.services import get_room_fanout
from ...services.realtime.fanout import RoomFanOut
from ...services.realtime.gateway import RealtimeConnection, authenticate_socket

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket, fanout: RoomFanOut = Depends(get_room_fanout)
) -> None:
    # Refuses the handshake (4401/4403) before accept
    user = await authenticate_socket(websocket)
    await RealtimeConnection(websocket, user, fanout).run()
