import logging
from typing import Dict, List

from fastapi import WebSocket

logger = logging.getLogger("websocket")

clients: Dict[str, List[WebSocket]] = {}  # chat session key: websockets


async def connect_ws(session_key: str, ws: WebSocket):
    await ws.accept()
    clients.setdefault(session_key, []).append(ws)


async def disconnect_ws(session_key: str, ws: WebSocket):
    sockets = clients.get(session_key)
    if sockets and ws in sockets:
        sockets.remove(ws)
    if sockets == []:
        clients.pop(session_key, None)


async def notify_session(session_key: str, event: dict):
    """Push an event to every socket watching this chat session."""
    for ws in list(clients.get(session_key, [])):
        try:
            await ws.send_json(event)
        except Exception:
            logger.warning("[WS] Dropping dead socket for session %s", session_key)
            await disconnect_ws(session_key, ws)
