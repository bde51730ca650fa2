"""Game mechanics for letterbox rooms.

This module drives every room transition from parsed client messages while
staying independent of the web framework: handlers only see
:class:`~letterbox.connection.Connection` and
:class:`~letterbox.room.Room` objects. Each handler runs entirely under the
room's lock so roster edits, host election and scoring are atomic with
respect to other messages for the same room.
"""
from __future__ import annotations

import logging
import time
from typing import Union

from pydantic import BaseModel

from .connection import Connection
from .constants import MIN_TO_START, ROLE_GUEST, ROLE_HOST
from .directory import RoomDirectory
from .room import Room
from .schemas import (
    AnswersMessage,
    AskRosterMessage,
    ChatEvent,
    ChatMessage,
    FinishEvent,
    FinishMessage,
    JoinedEvent,
    JoinMessage,
    LangEvent,
    LangMessage,
    LegacyScores,
    NeedMoreEvent,
    RosterEvent,
    RulesEvent,
    RulesMessage,
    ScoresEvent,
    ScoresPassthrough,
    SidePoints,
    StartEvent,
    StartMessage,
    parse_message,
)
from .scoring import score_round

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

async def apply_scores(room: Room) -> bool:
    """Score the current round once; later triggers for the same round are no-ops."""
    if room.last_scored_round == room.round:
        return False

    result = score_round(room.answers[ROLE_HOST], room.answers[ROLE_GUEST], room.letter, room.rules)
    room.per_round[ROLE_HOST].append(result.host)
    room.per_round[ROLE_GUEST].append(result.guest)
    room.running[ROLE_HOST] += result.host
    room.running[ROLE_GUEST] += result.guest
    room.last_scored_round = room.round
    room.reset_answers()

    logger.info(
        "room %s round %s scored host=%d guest=%d", room.code, room.round, result.host, result.guest
    )
    logger.debug("room %s round %s categories %s", room.code, room.round, result.categories)
    per_round = SidePoints(host=result.host, guest=result.guest)
    await room.broadcast(
        ScoresEvent(
            perRound=per_round,
            running=SidePoints(**room.running),
            scores=LegacyScores(totals=per_round),
        )
    )
    return True


# ---------------------------------------------------------------------------
# Message handlers (caller holds room.lock)
# ---------------------------------------------------------------------------

async def handle_start(room: Room, conn: Connection, msg: StartMessage):
    if not room.is_host(conn):
        return
    if len(room.members) < MIN_TO_START:
        await conn.send(NeedMoreEvent(n=MIN_TO_START))
        return
    room.round = msg.round
    room.total = msg.total
    room.letter = msg.letter
    room.reset_answers()
    deadline = int(now_ms() + room.total * 1000)
    logger.info("room %s round %s started letter=%r total=%ss", room.code, room.round, room.letter, room.total)
    await room.broadcast(StartEvent(round=room.round, letter=room.letter, total=room.total, deadline=deadline))


async def handle_answers(room: Room, conn: Connection, msg: AnswersMessage):
    room.answers[room.role_of(conn)] = msg.answers
    if room.answers[ROLE_HOST] is not None and room.answers[ROLE_GUEST] is not None:
        await apply_scores(room)


async def handle_finish(room: Room, conn: Connection, msg: FinishMessage):
    # Either side may never have submitted before time ran out
    for role in (ROLE_HOST, ROLE_GUEST):
        if room.answers[role] is None:
            room.answers[role] = []
    await room.broadcast(FinishEvent())
    await apply_scores(room)


async def handle_lang(room: Room, conn: Connection, msg: LangMessage):
    if not room.is_host(conn):
        return
    room.lang = msg.lang
    await room.broadcast(LangEvent(lang=room.lang))


async def handle_rules(room: Room, conn: Connection, msg: RulesMessage):
    if not room.is_host(conn):
        return
    room.rules = room.rules.model_copy(update=msg.rules.model_dump(exclude_none=True))
    await room.broadcast(RulesEvent(rules=room.rules))


async def handle_chat(room: Room, conn: Connection, msg: ChatMessage):
    await room.broadcast(ChatEvent(sender=conn.role, name=conn.name, text=msg.text))


async def handle_ask_roster(room: Room, conn: Connection, msg: AskRosterMessage):
    await conn.send(RosterEvent(members=room.roster()))


async def handle_scores_passthrough(room: Room, conn: Connection, msg: ScoresPassthrough):
    if not room.is_host(conn):
        return
    await room.broadcast(msg.model_dump())


_ROOM_HANDLERS = {
    AskRosterMessage: handle_ask_roster,
    ChatMessage: handle_chat,
    LangMessage: handle_lang,
    RulesMessage: handle_rules,
    StartMessage: handle_start,
    FinishMessage: handle_finish,
    AnswersMessage: handle_answers,
    ScoresPassthrough: handle_scores_passthrough,
}


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

async def handle_join(directory: RoomDirectory, conn: Connection, msg: JoinMessage):
    if not msg.code:
        return

    current = directory.get(conn.code)
    if current is not None and current.code == msg.code:
        async with current.lock:
            if conn in current.members:
                # Repeated join to the same room only refreshes the display name
                conn.name = msg.name
                await current.broadcast(RosterEvent(members=current.roster()))
                await conn.send(
                    JoinedEvent(
                        code=current.code,
                        role=conn.role,
                        capacity=current.capacity,
                        members=current.roster(),
                        lang=current.lang,
                    )
                )
                return
    if conn.code is not None:
        await handle_disconnect(directory, conn)

    while True:
        room = directory.get_or_create(msg.code)
        async with room.lock:
            # The last member may have left while we waited for the lock
            if room.closed:
                continue
            await room.join(conn, msg.name, msg.maxPlayers)
            return


async def handle_disconnect(directory: RoomDirectory, conn: Connection):
    room = directory.get(conn.code)
    if room is None:
        return
    async with room.lock:
        if await room.leave(conn):
            directory.remove(room)


# ---------------------------------------------------------------------------
# Primary dispatcher used by websocket endpoint
# ---------------------------------------------------------------------------

async def handle_ws_message(directory: RoomDirectory, conn: Connection, msg: BaseModel):
    if isinstance(msg, JoinMessage):
        await handle_join(directory, conn, msg)
        return

    handler = _ROOM_HANDLERS.get(type(msg))
    if handler is None:
        logger.debug("no handler for %s", type(msg).__name__)
        return
    room = directory.get(conn.code)
    if room is None:
        return
    async with room.lock:
        if conn not in room.members:
            return
        await handler(room, conn, msg)


async def handle_frame(directory: RoomDirectory, conn: Connection, raw: Union[str, bytes]):
    """Entry point for one inbound frame: rate limit, parse, dispatch."""
    if not conn.limiter.allow():
        logger.debug("rate limited %r", conn)
        return
    msg = parse_message(raw)
    if msg is None:
        logger.debug("dropping malformed frame from %r", conn)
        return
    await handle_ws_message(directory, conn, msg)


__all__ = [
    "now_ms",
    "apply_scores",
    "handle_start",
    "handle_answers",
    "handle_finish",
    "handle_lang",
    "handle_rules",
    "handle_chat",
    "handle_ask_roster",
    "handle_scores_passthrough",
    "handle_join",
    "handle_disconnect",
    "handle_ws_message",
    "handle_frame",
]
