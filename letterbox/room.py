from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from .broadcast import Delivery, broadcast
from .connection import Connection
from .constants import DEFAULT_LANG, DEFAULT_ROUND_SECONDS, ROLE_GUEST, ROLE_HOST
from .schemas import (
    HostChangedEvent,
    JoinedEvent,
    PeerCountEvent,
    RoomFullEvent,
    RoomRules,
    RosterEntry,
    RosterEvent,
)

logger = logging.getLogger(__name__)

# NOTE: every coroutine on ``Room`` that mutates state expects the caller to
# hold ``room.lock``; ``game_logic`` is the only place that acquires it.


class Room:
    """Runtime state of one game session keyed by its short code."""

    def __init__(self, code: str, capacity: int = 4):
        self.code = code
        self.capacity = capacity
        # Join order; the first member wins host elections
        self.members: List[Connection] = []
        self.host: Optional[Connection] = None
        self.lock = asyncio.Lock()
        # Set once the last member leaves; a closed room is never reused
        self.closed = False

        self.round: Union[int, float] = 1
        self.letter: Optional[str] = None
        self.total: Union[int, float] = DEFAULT_ROUND_SECONDS
        self.lang: str = DEFAULT_LANG
        self.rules = RoomRules()

        # Pending answers per role; None means "not submitted yet"
        self.answers: Dict[str, Optional[List[str]]] = {ROLE_HOST: None, ROLE_GUEST: None}
        self.per_round: Dict[str, List[int]] = {ROLE_HOST: [], ROLE_GUEST: []}
        self.running: Dict[str, int] = {ROLE_HOST: 0, ROLE_GUEST: 0}
        self.last_scored_round: Union[int, float] = 0

    def __repr__(self) -> str:
        return f"<Room {self.code} {len(self.members)}/{self.capacity}>"

    # -------------------- Roster -------------------- #

    def is_host(self, conn: Connection) -> bool:
        return self.host is not None and conn is self.host and conn in self.members

    def role_of(self, conn: Connection) -> str:
        return ROLE_HOST if self.is_host(conn) else ROLE_GUEST

    def roster(self) -> List[RosterEntry]:
        return [RosterEntry(role=m.role, name=m.name) for m in self.members]

    def elect_host(self) -> bool:
        """Re-validate the host against the roster; return *True* if it changed."""
        if self.host is not None and self.host in self.members:
            return False
        self.host = self.members[0] if self.members else None
        if self.host is not None:
            self.host.role = ROLE_HOST
        return True

    def reset_answers(self) -> None:
        self.answers = {ROLE_HOST: None, ROLE_GUEST: None}

    async def join(self, conn: Connection, name: str, capacity: Optional[int] = None) -> bool:
        """Admit *conn*; reply ``room-full`` and close it when there is no seat left."""
        if not self.members and capacity is not None:
            self.capacity = capacity

        if len(self.members) >= self.capacity:
            logger.info("room %s full (%d), rejecting %r", self.code, self.capacity, conn)
            await conn.send(RoomFullEvent(capacity=self.capacity))
            await conn.close(code=1000)
            return False

        conn.name = name
        conn.code = self.code
        if self.host is None:
            conn.role = ROLE_HOST
            self.host = conn
        else:
            conn.role = ROLE_GUEST
        self.members.append(conn)
        self.elect_host()

        await self.broadcast_roster()
        await conn.send(
            JoinedEvent(
                code=self.code,
                role=conn.role,
                capacity=self.capacity,
                members=self.roster(),
                lang=self.lang,
            )
        )
        return True

    async def leave(self, conn: Connection) -> bool:
        """Drop *conn* from the roster. Returns *True* when the room is now empty."""
        if conn not in self.members:
            return False
        was_host = conn is self.host
        self.members.remove(conn)
        conn.code = None
        changed = self.elect_host()

        if not self.members:
            self.closed = True
            return True

        await self.broadcast_roster()
        if was_host and changed:
            logger.info("room %s host migrated to %r", self.code, self.host)
            await self.broadcast(HostChangedEvent())
        return False

    # -------------------- Broadcasting helpers -------------------- #

    async def broadcast(self, payload: Union[BaseModel, Dict[str, Any]]) -> List[Delivery]:
        return await broadcast(self.members, payload)

    async def broadcast_roster(self) -> None:
        await self.broadcast(RosterEvent(members=self.roster()))
        await self.broadcast(PeerCountEvent(n=len(self.members), capacity=self.capacity))


__all__ = ["Room"]
