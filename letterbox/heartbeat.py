from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .connection import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)


class HeartbeatSweeper:
    """Process-wide liveness sweep.

    The ping/pong exchange itself is the server's protocol keepalive (uvicorn
    is started with ``ws_ping_interval``/``ws_ping_timeout`` equal to
    ``interval``), so a peer that stops answering pings is closed by the
    transport. Every ``interval`` seconds this task terminates any registered
    connection the transport has reported as gone, which covers sockets whose
    sends stalled or failed but whose reader never saw a close. Termination
    cancels the connection's reader, which runs the ordinary disconnect path.
    """

    def __init__(self, registry: ConnectionRegistry, interval: float = 30.0):
        self.registry = registry
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    async def _reap(self, conn: Connection) -> bool:
        if conn.alive:
            return False
        logger.warning("terminating unresponsive %r", conn)
        await conn.terminate()
        return True

    async def sweep(self) -> int:
        """Run one pass; returns how many connections were terminated."""
        outcomes = await asyncio.gather(
            *(self._reap(conn) for conn in self.registry.snapshot()), return_exceptions=True
        )
        terminated = 0
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.error("heartbeat sweep of a connection failed: %s", outcome)
            elif outcome is True:
                terminated += 1
        return terminated

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("heartbeat sweep failed")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


__all__ = ["HeartbeatSweeper"]
