from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .connection import ConnectionRegistry
from .directory import RoomDirectory
from .heartbeat import HeartbeatSweeper
from .routers import health as health_router
from .routers import websockets as ws_router

logger = logging.getLogger(__name__)


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    # Process-level containment: log and keep the server running
    exc = context.get("exception")
    logger.error("unhandled error in event loop: %s", context.get("message"), exc_info=exc)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    registry = ConnectionRegistry()
    directory = RoomDirectory(default_capacity=settings.max_players)
    sweeper = HeartbeatSweeper(registry, interval=settings.heartbeat_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
        sweeper.start()
        yield
        await sweeper.stop()

    app = FastAPI(title="letterbox", lifespan=lifespan)

    # Allow all origins – the only HTTP surface is the health probe.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.registry = registry
    app.state.directory = directory
    app.state.sweeper = sweeper

    app.include_router(health_router.router)
    app.include_router(ws_router.router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
