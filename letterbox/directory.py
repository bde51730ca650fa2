"""Code → Room mapping owned by the application."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .room import Room

logger = logging.getLogger(__name__)


class RoomDirectory:
    """Creates rooms lazily on first reference and forgets them once empty.

    None of these methods suspend, so on a single event loop each call is
    atomic with respect to other handlers.
    """

    def __init__(self, default_capacity: int = 4):
        self.default_capacity = default_capacity
        self._rooms: Dict[str, Room] = {}

    def get(self, code: Optional[str]) -> Optional[Room]:
        if not code:
            return None
        return self._rooms.get(code)

    def get_or_create(self, code: str) -> Room:
        room = self._rooms.get(code)
        if room is None or room.closed:
            room = Room(code, capacity=self.default_capacity)
            self._rooms[code] = room
            logger.info("room %s created", code)
        return room

    def remove(self, room: Room) -> None:
        # A newer room may already sit under the same code
        if self._rooms.get(room.code) is room:
            del self._rooms[room.code]
            logger.info("room %s destroyed", room.code)

    def codes(self) -> List[str]:
        return list(self._rooms)

    def __contains__(self, code: object) -> bool:
        return code in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)


__all__ = ["RoomDirectory"]
