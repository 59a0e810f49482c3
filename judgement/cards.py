"""Trump symbols and deck constants for Judgement."""

from __future__ import annotations

from enum import Enum
from typing import Sequence


class Trump(Enum):
    SPADES = "S"
    DIAMONDS = "D"
    CLUBS = "C"
    HEARTS = "H"
    NO_TRUMP = "NT"

    def __str__(self) -> str:
        return self.value


# Standard 52-card deck; the hand size of the first round is DECK_SIZE // players.
DECK_SIZE = 52

# Round 1 is spades, round 6 is spades again.
TRUMP_CYCLE: list[Trump] = [
    Trump.SPADES,
    Trump.DIAMONDS,
    Trump.CLUBS,
    Trump.HEARTS,
    Trump.NO_TRUMP,
]


def trump_for_round(position: int, cycle: Sequence[Trump] = TRUMP_CYCLE) -> Trump:
    """Return the trump for the 0-based plan position."""
    return cycle[position % len(cycle)]


def parse_trump(symbol: str) -> Trump:
    try:
        return Trump(symbol.upper())
    except ValueError as exc:
        raise ValueError(f"Unknown trump symbol: {symbol!r}") from exc


def trump_label(trump: Trump) -> str:
    if trump is Trump.NO_TRUMP:
        return "No Trump"
    return trump.name.title()
