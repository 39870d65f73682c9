"""
Relay channel - persistent WebSocket connections from devices.
"""

from fastapi import APIRouter, WebSocket

from app.session import ConnectionSession

router = APIRouter(tags=["Relay"])


@router.websocket("/ws")
@router.websocket("/")
async def relay_channel(websocket: WebSocket) -> None:
    """
    Relay channel.

    Protocol:
    1. Client -> {token}
    2. Server -> {ok: true, msg: "Auth success"} (or close 1008)
    3. Client -> {sensor, timestamp, signature, boardId, targetId?}
       (no reply; the target device receives {from, sensor, volt, timestamp})
    """
    state = websocket.app.state
    settings = state.settings

    session = ConnectionSession(
        websocket,
        state.registry,
        state.dispatcher,
        outbound_queue_size=settings.outbound_queue_size,
        send_timeout=settings.send_timeout,
        idle_timeout=settings.idle_timeout,
    )
    await session.run()
