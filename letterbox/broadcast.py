"""Room-wide fan-out delivery."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from .connection import Connection
from .schemas import encode

logger = logging.getLogger(__name__)


class Delivery(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    conn: Connection
    ok: bool
    error: Optional[BaseException] = None


async def broadcast(
    members: Iterable[Connection], payload: Union[BaseModel, Dict[str, Any]]
) -> List[Delivery]:
    """Send *payload* to every member, serialising it once.

    Each send is bounded by ``SEND_TIMEOUT``, so a stalled peer delays the
    fan-out by at most that long once and is skipped afterwards. A failing
    recipient never aborts delivery to the others and is not removed from
    anything here; roster changes only happen on disconnect.
    """
    text = encode(payload)
    targets = list(members)
    outcomes = await asyncio.gather(
        *(conn.send_text(text) for conn in targets), return_exceptions=True
    )
    results: List[Delivery] = []
    for conn, outcome in zip(targets, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.warning("broadcast to %r failed: %r", conn, outcome)
            results.append(Delivery(conn=conn, ok=False, error=outcome))
        else:
            results.append(Delivery(conn=conn, ok=True))
    return results


__all__ = ["Delivery", "broadcast"]
