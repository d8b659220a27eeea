# backend/api/services/broadcast.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import WebSocket

log = logging.getLogger(__name__)


class IncidentHub:
    """Fan-out of live incident events to connected websocket clients."""

    def __init__(self) -> None:
        self.connections: List[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self.connections.append(ws)
        log.info("Live client connected (%s open)", len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        if ws in self.connections:
            self.connections.remove(ws)

    async def broadcast(self, message: Dict[str, Any]) -> int:
        """Send to every client; drop the ones that fail. Returns deliveries."""
        delivered = 0
        for ws in list(self.connections):
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:  # closed socket, network error
                log.info("Dropping live client: %s", e)
                self.disconnect(ws)
        return delivered


hub = IncidentHub()


def incident_created_event(incident: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "incident_created", "incident": incident}
