import asyncio

import pytest
from starlette.websockets import WebSocketState

from letterbox.connection import ConnectionRegistry
from letterbox.heartbeat import HeartbeatSweeper


@pytest.mark.asyncio
async def test_idle_members_survive_repeated_sweeps(directory, make_conn, send):
    registry = ConnectionRegistry()
    h, g = make_conn(), make_conn()
    for conn in (h, g):
        registry.add(conn)
    await send(directory, h, t="join", code="IDLE", name="H")
    await send(directory, g, t="join", code="IDLE", name="G")
    before = list(g.ws.sent)

    sweeper = HeartbeatSweeper(registry)
    assert await sweeper.sweep() == 0
    assert await sweeper.sweep() == 0

    assert not h.terminated and not g.terminated
    assert not g.ws.closed
    # Liveness never puts frames of its own on the wire
    assert g.ws.sent == before
    assert len(directory.get("IDLE").members) == 2


@pytest.mark.asyncio
async def test_broken_connection_is_terminated(make_conn):
    registry = ConnectionRegistry()
    alive, dead = make_conn(), make_conn(fail=True)
    registry.add(alive)
    registry.add(dead)

    reader = asyncio.create_task(asyncio.sleep(3600))
    dead.reader = reader
    assert not await dead.send({"t": "finish"})

    terminated = await HeartbeatSweeper(registry).sweep()

    assert terminated == 1
    assert dead.terminated
    assert dead.ws.close_code == 1001
    await asyncio.sleep(0)
    assert reader.cancelled()
    assert not alive.terminated


@pytest.mark.asyncio
async def test_transport_disconnect_is_terminated(make_conn):
    registry = ConnectionRegistry()
    conn = make_conn()
    registry.add(conn)
    conn.ws.client_state = WebSocketState.DISCONNECTED

    assert await HeartbeatSweeper(registry).sweep() == 1
    assert conn.terminated


@pytest.mark.asyncio
async def test_start_and_stop(make_conn):
    registry = ConnectionRegistry()
    idle, dead = make_conn(), make_conn()
    registry.add(idle)
    registry.add(dead)
    dead.broken = True

    sweeper = HeartbeatSweeper(registry, interval=0.01)
    sweeper.start()
    await asyncio.sleep(0.05)
    await sweeper.stop()

    assert dead.terminated
    assert not idle.terminated
