import asyncio
import json

import pytest
from starlette.websockets import WebSocketState

from letterbox.connection import Connection
from letterbox.directory import RoomDirectory
from letterbox.game_logic import handle_frame
from letterbox.ratelimit import RateLimiter


class FakeSocket:
    """In-memory stand-in for a Starlette WebSocket."""

    def __init__(self, fail: bool = False, yield_on_send: bool = False, stall: bool = False):
        self.sent: list[dict] = []
        self.closed = False
        self.close_code = None
        self.client_state = WebSocketState.CONNECTED
        self.fail = fail
        self.yield_on_send = yield_on_send
        # A peer whose receive window is full: writes never complete
        self.stall = stall

    async def send_text(self, text: str):
        if self.stall:
            await asyncio.Event().wait()
        if self.yield_on_send:
            await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("socket is closing")
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000):
        self.closed = True
        self.close_code = code

    def all(self, t: str) -> list[dict]:
        return [m for m in self.sent if m.get("t") == t]

    def last(self, t: str):
        found = self.all(t)
        return found[-1] if found else None


@pytest.fixture()
def directory():
    return RoomDirectory(default_capacity=4)


@pytest.fixture()
def make_conn():
    def _make(fail: bool = False, yield_on_send: bool = False, stall: bool = False) -> Connection:
        # Generous bucket so scenario tests are never throttled
        return Connection(
            FakeSocket(fail=fail, yield_on_send=yield_on_send, stall=stall),
            limiter=RateLimiter(capacity=1000),
        )

    return _make


@pytest.fixture()
def fast_send_timeout(monkeypatch):
    monkeypatch.setattr("letterbox.constants.SEND_TIMEOUT", 0.05)


@pytest.fixture()
def send():
    async def _send(directory: RoomDirectory, conn: Connection, **payload):
        await handle_frame(directory, conn, json.dumps(payload))

    return _send
