"""Connection handles and the process-wide registry used by the heartbeat."""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, Iterator, List, Optional, Set, Union

from pydantic import BaseModel
from starlette.websockets import WebSocketState

from . import constants
from .ratelimit import RateLimiter
from .schemas import encode

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


class BrokenConnection(ConnectionError):
    """Raised when sending to a connection that already failed a send."""


class Connection:
    """One participant's socket plus the per-connection state the server keeps.

    ``ws`` only needs ``send_text``, ``close`` and ``client_state``; in
    production it is a Starlette ``WebSocket``.

    Protocol-level ping/pong is handled by the server underneath; what this
    object tracks is whether the transport has told us the peer is gone,
    either through the socket state or by a failed or stalled send.
    """

    def __init__(self, ws: Any, limiter: Optional[RateLimiter] = None):
        self.id = next(_ids)
        self.ws = ws
        self.limiter = limiter or RateLimiter()
        self.role: Optional[str] = None
        self.name: str = ""
        self.code: Optional[str] = None
        self.broken = False
        self.terminated = False
        # Task pumping inbound frames; cancelled on forced termination
        self.reader: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"<Connection #{self.id} {self.role or '-'} {self.code or '-'}>"

    @property
    def alive(self) -> bool:
        return not self.broken and self.ws.client_state != WebSocketState.DISCONNECTED

    async def send_text(self, text: str) -> None:
        """Write one frame, giving up after ``SEND_TIMEOUT`` seconds.

        Any failure marks the connection broken so later sends return at once
        and the heartbeat sweep reaps it.
        """
        if self.broken:
            raise BrokenConnection(f"{self!r} is broken")
        try:
            await asyncio.wait_for(self.ws.send_text(text), timeout=constants.SEND_TIMEOUT)
        except Exception:
            self.broken = True
            raise

    async def send(self, payload: Union[BaseModel, Dict[str, Any]]) -> bool:
        """Unicast *payload*; delivery failures are logged and reported as *False*."""
        try:
            await self.send_text(encode(payload))
        except Exception as exc:
            logger.warning("send to %r failed: %r", self, exc)
            return False
        return True

    async def close(self, code: int = 1000) -> None:
        try:
            await asyncio.wait_for(self.ws.close(code=code), timeout=constants.SEND_TIMEOUT)
        except Exception as exc:
            logger.debug("close of %r failed: %r", self, exc)

    async def terminate(self) -> None:
        """Drop the connection without waiting for the peer's close handshake."""
        self.terminated = True
        if self.reader is not None and not self.reader.done():
            self.reader.cancel()
        await self.close(code=1001)


class ConnectionRegistry:
    """Every live connection in the process, independent of rooms."""

    def __init__(self) -> None:
        self._connections: Set[Connection] = set()

    def add(self, conn: Connection) -> None:
        self._connections.add(conn)

    def remove(self, conn: Connection) -> None:
        self._connections.discard(conn)

    def snapshot(self) -> List[Connection]:
        return list(self._connections)

    def __contains__(self, conn: object) -> bool:
        return conn in self._connections

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._connections)


__all__ = ["BrokenConnection", "Connection", "ConnectionRegistry"]
