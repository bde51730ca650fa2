"""Pydantic wire schemas.

Inbound frames are parsed into a closed union discriminated on ``t``; any
frame that does not fit one of the variants is dropped by the caller.
Outbound events are plain models serialised once per broadcast.

Field normalisation mirrors what clients have always been able to send:
missing or mistyped values fall back to safe defaults instead of rejecting
the frame.
"""
from __future__ import annotations

import json
import math
import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .constants import (
    ANSWER_MAX_LEN,
    CHAT_MAX_LEN,
    CODE_MAX_LEN,
    DEFAULT_ROUND_SECONDS,
    LETTER_MAX_LEN,
    MAX_CAPACITY,
    MIN_CAPACITY,
    NAME_MAX_LEN,
)

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def _text(value: Any) -> str:
    """Stringify a loosely typed client value; falsy values become ``""``."""
    if not value:
        return ""
    return value if isinstance(value, str) else str(value)


def _number(value: Any) -> Optional[Union[int, float]]:
    """Coerce to a finite number, keeping integral values as ``int``."""
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    return int(num) if num.is_integer() else num


def normalize_code(raw: Any) -> str:
    return _NON_ALNUM.sub("", _text(raw).upper())[:CODE_MAX_LEN]


# -----------------------------
# Rules
# -----------------------------

class RoomRules(BaseModel):
    requireLetter: bool = True
    dupZero: bool = True


class RulesPatch(BaseModel):
    requireLetter: Optional[bool] = None
    dupZero: Optional[bool] = None


# -----------------------------
# Scoring results
# -----------------------------

class CategoryResult(BaseModel):
    index: int
    host_valid: bool
    guest_valid: bool
    duplicate: bool
    host_points: int
    guest_points: int


class RoundResult(BaseModel):
    host: int = 0
    guest: int = 0
    categories: List[CategoryResult] = []


# -----------------------------
# Inbound (client -> server)
# -----------------------------

class _Inbound(BaseModel):
    model_config = ConfigDict(extra="ignore")


class JoinMessage(_Inbound):
    t: Literal["join"]
    code: str = ""
    name: str = ""
    maxPlayers: Optional[int] = None

    @field_validator("code", mode="before")
    @classmethod
    def _code(cls, v: Any) -> str:
        return normalize_code(v)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v: Any) -> str:
        return _text(v)[:NAME_MAX_LEN]

    @field_validator("maxPlayers", mode="before")
    @classmethod
    def _capacity(cls, v: Any) -> Optional[int]:
        num = _number(v)
        if not isinstance(num, int) or not MIN_CAPACITY <= num <= MAX_CAPACITY:
            return None
        return int(num)


class AskRosterMessage(_Inbound):
    t: Literal["askRoster"]


class ChatMessage(_Inbound):
    t: Literal["chat"]
    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def _clip(cls, v: Any) -> str:
        return _text(v)[:CHAT_MAX_LEN]


class LangMessage(_Inbound):
    t: Literal["lang"]
    lang: str = "ar"

    @field_validator("lang", mode="before")
    @classmethod
    def _lang(cls, v: Any) -> str:
        return "en" if v == "en" else "ar"


class RulesMessage(_Inbound):
    t: Literal["rules"]
    rules: RulesPatch = Field(default_factory=RulesPatch)

    @field_validator("rules", mode="before")
    @classmethod
    def _rules(cls, v: Any) -> Any:
        return v or {}


class StartMessage(_Inbound):
    t: Literal["start"]
    round: Union[int, float] = 1
    total: Union[int, float] = DEFAULT_ROUND_SECONDS
    letter: str = ""

    @field_validator("round", mode="before")
    @classmethod
    def _round(cls, v: Any) -> Union[int, float]:
        return _number(v) or 1

    @field_validator("total", mode="before")
    @classmethod
    def _total(cls, v: Any) -> Union[int, float]:
        return _number(v) or DEFAULT_ROUND_SECONDS

    @field_validator("letter", mode="before")
    @classmethod
    def _letter(cls, v: Any) -> str:
        return _text(v)[:LETTER_MAX_LEN]


class FinishMessage(_Inbound):
    t: Literal["finish"]


class AnswersMessage(_Inbound):
    t: Literal["answers"]
    answers: List[str] = Field(default_factory=list)

    @field_validator("answers", mode="before")
    @classmethod
    def _answers(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [_text(x)[:ANSWER_MAX_LEN] for x in v]


class ScoresPassthrough(_Inbound):
    """Host-supplied scores frame; every extra key is kept and relayed."""

    model_config = ConfigDict(extra="allow")

    t: Literal["scores"]


InboundMessage = Annotated[
    Union[
        JoinMessage,
        AskRosterMessage,
        ChatMessage,
        LangMessage,
        RulesMessage,
        StartMessage,
        FinishMessage,
        AnswersMessage,
        ScoresPassthrough,
    ],
    Field(discriminator="t"),
]

_inbound_adapter: TypeAdapter = TypeAdapter(InboundMessage)


def parse_message(raw: Union[str, bytes]) -> Optional[BaseModel]:
    """Return the parsed inbound message, or *None* for anything malformed."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError:
        return None


# -----------------------------
# Outbound (server -> client)
# -----------------------------

class RosterEntry(BaseModel):
    role: Optional[str]
    name: str


class _Outbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class JoinedEvent(_Outbound):
    t: Literal["joined"] = "joined"
    code: str
    role: str
    capacity: int = Field(serialization_alias="max")
    members: List[RosterEntry] = Field(serialization_alias="list")
    lang: str


class RoomFullEvent(_Outbound):
    t: Literal["room-full"] = "room-full"
    capacity: int = Field(serialization_alias="max")


class NeedMoreEvent(_Outbound):
    t: Literal["need-more"] = "need-more"
    n: int


class RosterEvent(_Outbound):
    t: Literal["roster"] = "roster"
    members: List[RosterEntry] = Field(serialization_alias="list")


class PeerCountEvent(_Outbound):
    t: Literal["peer-count"] = "peer-count"
    n: int
    capacity: int = Field(serialization_alias="max")


class HostChangedEvent(_Outbound):
    t: Literal["host-changed"] = "host-changed"


class StartEvent(_Outbound):
    t: Literal["start"] = "start"
    round: Union[int, float]
    letter: str
    total: Union[int, float]
    deadline: int


class FinishEvent(_Outbound):
    t: Literal["finish"] = "finish"


class SidePoints(BaseModel):
    host: int = 0
    guest: int = 0


class LegacyScores(BaseModel):
    totals: SidePoints


class ScoresEvent(_Outbound):
    t: Literal["scores"] = "scores"
    perRound: SidePoints
    running: SidePoints
    # mirror of perRound kept for older clients
    scores: LegacyScores


class LangEvent(_Outbound):
    t: Literal["lang"] = "lang"
    lang: str


class RulesEvent(_Outbound):
    t: Literal["rules"] = "rules"
    rules: RoomRules


class ChatEvent(_Outbound):
    t: Literal["chat"] = "chat"
    sender: Optional[str] = Field(serialization_alias="from")
    name: str
    text: str


def encode(payload: Union[BaseModel, Dict[str, Any]]) -> str:
    """Serialise an outbound event to the JSON text sent on the wire."""
    if isinstance(payload, BaseModel):
        return payload.model_dump_json(by_alias=True)
    return json.dumps(payload, ensure_ascii=False)


__all__ = [
    "normalize_code",
    "RoomRules",
    "RulesPatch",
    "CategoryResult",
    "RoundResult",
    "JoinMessage",
    "AskRosterMessage",
    "ChatMessage",
    "LangMessage",
    "RulesMessage",
    "StartMessage",
    "FinishMessage",
    "AnswersMessage",
    "ScoresPassthrough",
    "InboundMessage",
    "parse_message",
    "RosterEntry",
    "JoinedEvent",
    "RoomFullEvent",
    "NeedMoreEvent",
    "RosterEvent",
    "PeerCountEvent",
    "HostChangedEvent",
    "StartEvent",
    "FinishEvent",
    "SidePoints",
    "LegacyScores",
    "ScoresEvent",
    "LangEvent",
    "RulesEvent",
    "ChatEvent",
    "encode",
]
