from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from services.broadcast import hub

router = APIRouter(tags=["live"])


@router.websocket("/ws/incidents")
async def incidents_feed(ws: WebSocket):
    """Push-only channel; anything the client sends is ignored."""
    await hub.connect(ws)
    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        hub.disconnect(ws)
