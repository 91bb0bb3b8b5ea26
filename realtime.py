# realtime.py - chat broadcast over WebSocket
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from typing import Any, Dict, List, Tuple
import json
import logging
import uuid

logger = logging.getLogger(__name__)

realtime_router = APIRouter()

SEND_MESSAGE_EVENT = "sendMessage"
RECEIVE_MESSAGE_EVENT = "receiveMessage"


class ConnectionRegistry:
    """💬 Live connections of the single broadcast topic"""

    def __init__(self):
        self._connections: Dict[str, WebSocket] = {}

    def add(self, connection_id: str, websocket: WebSocket):
        self._connections[connection_id] = websocket

    def remove(self, connection_id: str):
        self._connections.pop(connection_id, None)

    def snapshot(self) -> List[Tuple[str, WebSocket]]:
        return list(self._connections.items())

    def __len__(self):
        return len(self._connections)

    def __contains__(self, connection_id):
        return connection_id in self._connections

    async def broadcast(self, event: str, data: Any) -> int:
        """
        Send {"event": event, "data": data} to every connection open right now.

        A connection that fails to receive is dropped. Returns the number of
        connections the frame was handed to.
        """
        frame = {"event": event, "data": data}
        delivered = 0

        for connection_id, websocket in self.snapshot():
            try:
                await websocket.send_json(frame)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                logger.warning(f"⚠️ Dropping connection {connection_id}: {e}")
                self.remove(connection_id)

        return delivered


def parse_frame(text: str):
    """Return (event, data) for a JSON envelope, None if malformed"""
    try:
        frame = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        return None
    return frame["event"], frame.get("data")


@realtime_router.websocket("/ws")
async def chat_socket(websocket: WebSocket):
    registry: ConnectionRegistry = websocket.app.state.registry
    allowed_origin = websocket.app.state.config.get_client_origin()

    origin = websocket.headers.get("origin")
    if origin is not None and origin != allowed_origin:
        logger.warning(f"🚫 Refused realtime connection from origin {origin}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection_id = uuid.uuid4().hex[:12]
    registry.add(connection_id, websocket)
    logger.info(f"A user connected: {connection_id}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            text = message.get("text")
            if text is None:
                text = (message.get("bytes") or b"").decode("utf-8", errors="replace")

            parsed = parse_frame(text)
            if parsed is None:
                logger.warning(f"Ignoring malformed frame from {connection_id}")
                continue

            event, data = parsed
            if event != SEND_MESSAGE_EVENT:
                logger.warning(f"Ignoring unknown event {event!r} from {connection_id}")
                continue

            logger.info(f"Received message from {connection_id}: {data!r}")
            await registry.broadcast(RECEIVE_MESSAGE_EVENT, data)
    except WebSocketDisconnect:
        pass
    finally:
        registry.remove(connection_id)
        logger.info(f"A user disconnected: {connection_id}")
