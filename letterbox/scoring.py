"""Round scoring.

Pure functions only: nothing here touches rooms or sockets, so the room can
call :func:`score_round` while holding its lock without suspending.
"""
from __future__ import annotations

import re
from typing import List, Optional, Sequence

from .constants import DEFAULT_CATEGORIES
from .schemas import CategoryResult, RoomRules, RoundResult

_ALEF_VARIANTS = re.compile("[إأآ]")
_NOT_LETTER = re.compile("[^A-Za-zء-ي]")


def normalize_arabic(text: Optional[str]) -> str:
    """Fold hamza-seated alefs to bare alef, alef maksura to yeh, teh marbuta to heh."""
    return (
        _ALEF_VARIANTS.sub("ا", text or "")
        .replace("ى", "ي")
        .replace("ة", "ه")
    )


def normalize_word(text: Optional[str]) -> str:
    return normalize_arabic((text or "").strip().lower())


def letter_count(text: Optional[str]) -> int:
    return len(_NOT_LETTER.sub("", text or ""))


def starts_with_letter(answer: str, letter: Optional[str]) -> bool:
    return normalize_arabic(answer).strip().startswith(normalize_arabic(letter).strip())


def is_valid(answer: Optional[str], letter: Optional[str], require_letter: bool) -> bool:
    if not answer:
        return False
    if letter_count(answer) < 2:
        return False
    return starts_with_letter(answer, letter) if require_letter else True


def score_round(
    host_answers: Optional[Sequence[str]],
    guest_answers: Optional[Sequence[str]],
    letter: Optional[str],
    rules: RoomRules,
) -> RoundResult:
    """Score one round for both sides.

    At least ``DEFAULT_CATEGORIES`` slots are always evaluated, even when the
    clients submitted fewer; missing slots count as empty answers.
    """
    host_answers = list(host_answers or [])
    guest_answers = list(guest_answers or [])
    count = max(len(host_answers), len(guest_answers), DEFAULT_CATEGORIES)

    categories: List[CategoryResult] = []
    for i in range(count):
        ha = host_answers[i] if i < len(host_answers) else ""
        ga = guest_answers[i] if i < len(guest_answers) else ""
        hv = is_valid(ha, letter, rules.requireLetter)
        gv = is_valid(ga, letter, rules.requireLetter)
        dup = hv and gv and normalize_word(ha) == normalize_word(ga)
        zeroed = dup and rules.dupZero
        hp = 1 if hv and not zeroed else 0
        gp = 1 if gv and not zeroed else 0
        categories.append(
            CategoryResult(
                index=i,
                host_valid=hv,
                guest_valid=gv,
                duplicate=dup,
                host_points=hp,
                guest_points=gp,
            )
        )
    return RoundResult(
        host=sum(c.host_points for c in categories),
        guest=sum(c.guest_points for c in categories),
        categories=categories,
    )


__all__ = [
    "normalize_arabic",
    "normalize_word",
    "letter_count",
    "starts_with_letter",
    "is_valid",
    "CategoryResult",
    "RoundResult",
    "score_round",
]
