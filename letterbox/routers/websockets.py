from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket

from ..connection import Connection
from ..directory import RoomDirectory
from ..game_logic import handle_disconnect, handle_frame

router = APIRouter(prefix="", tags=["ws"])
logger = logging.getLogger(__name__)


async def _pump(directory: RoomDirectory, conn: Connection) -> None:
    ws = conn.ws
    while True:
        message = await ws.receive()
        if message["type"] == "websocket.disconnect":
            return
        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes")
        if raw is None:
            continue
        try:
            await handle_frame(directory, conn, raw)
        except Exception:
            # Last-resort containment: log and keep serving this connection
            logger.exception("unhandled error processing frame from %r", conn)


# Upgrades are accepted on any path
@router.websocket("/{path:path}")
async def websocket_endpoint(ws: WebSocket, path: str = ""):
    await ws.accept()
    directory: RoomDirectory = ws.app.state.directory
    registry = ws.app.state.registry

    conn = Connection(ws)
    registry.add(conn)
    conn.reader = asyncio.create_task(_pump(directory, conn))
    try:
        await conn.reader
    except asyncio.CancelledError:
        if not conn.terminated:
            raise
    finally:
        registry.remove(conn)
        await handle_disconnect(directory, conn)
