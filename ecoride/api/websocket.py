"""
Real-time push channel
======================

WS /ws?userId=<id>[&tripId=<id>]

Clients receive every marketplace event addressed to their user or to the
trip they joined (see ``ecoride.infrastructure.events``).  Two client
messages are understood:

* ``{"type": "join_trip", "tripId": 12}``: follow a trip's events and chat;
* ``{"type": "chat_message", "message": "..."}``: relayed to everyone else
  following the same trip.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass(eq=False)
class Client:
    websocket: WebSocket
    user_id: int
    trip_id: Optional[int] = None


class ConnectionManager:
    """Tracks connected clients by user and followed trip."""

    def __init__(self):
        self.clients: list[Client] = []

    async def connect(
        self, websocket: WebSocket, user_id: int, trip_id: Optional[int] = None
    ) -> Client:
        await websocket.accept()
        client = Client(websocket, user_id, trip_id)
        self.clients.append(client)
        logger.info("WebSocket client connected: user %d", user_id)
        return client

    def disconnect(self, client: Client) -> None:
        if client in self.clients:
            self.clients.remove(client)
            logger.info("WebSocket client disconnected: user %d", client.user_id)

    async def send(self, client: Client, message: dict[str, Any]) -> None:
        if client.websocket.application_state == WebSocketState.CONNECTED:
            await client.websocket.send_json(message)

    async def send_to_user(self, user_id: int, message: dict[str, Any]) -> None:
        for client in list(self.clients):
            if client.user_id == user_id:
                await self.send(client, message)

    async def broadcast_to_trip(
        self,
        trip_id: int,
        message: dict[str, Any],
        exclude_user_id: Optional[int] = None,
    ) -> None:
        for client in list(self.clients):
            if client.trip_id == trip_id and client.user_id != exclude_user_id:
                await self.send(client, message)

    async def dispatch(self, event: dict[str, Any]) -> int:
        """Deliver a marketplace event once to every interested client."""
        user_ids = set(event.get("user_ids") or ())
        trip_id = event.get("trip_id")
        delivered = 0
        for client in list(self.clients):
            if client.user_id in user_ids or (
                trip_id is not None and client.trip_id == trip_id
            ):
                await self.send(client, event)
                delivered += 1
        return delivered

    async def handle_message(self, client: Client, data: dict[str, Any]) -> None:
        kind = data.get("type")
        if kind == "join_trip":
            client.trip_id = int(data["tripId"])
            await self.broadcast_to_trip(
                client.trip_id,
                {"type": "user_joined", "userId": client.user_id},
                exclude_user_id=client.user_id,
            )
        elif kind == "chat_message" and client.trip_id is not None:
            await self.broadcast_to_trip(
                client.trip_id,
                {
                    "type": "new_message",
                    "message": data.get("message", ""),
                    "senderId": client.user_id,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
        else:
            logger.debug("Ignoring WebSocket message of type %r", kind)


manager = ConnectionManager()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    try:
        user_id = int(websocket.query_params["userId"])
        trip_param = websocket.query_params.get("tripId")
        trip_id = int(trip_param) if trip_param else None
    except (KeyError, ValueError):
        await websocket.close(code=1008)
        return

    client = await manager.connect(websocket, user_id, trip_id)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON frame from user %d", user_id)
                continue
            if isinstance(data, dict):
                try:
                    await manager.handle_message(client, data)
                except (KeyError, ValueError, TypeError):
                    logger.warning("Malformed WebSocket message from user %d", user_id)
    except WebSocketDisconnect as exc:
        logger.debug("WebSocket closed by user %d (code %s)", user_id, exc.code)
    finally:
        manager.disconnect(client)
