"""Game state records for Judgement."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Union

from .cards import Trump


class RoundState(Enum):
    BIDDING = auto()
    PLAYING = auto()
    COMPLETED = auto()

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Made:
    """A reported trick count; a make only when it equals the player's bid."""

    tricks: int


@dataclass(frozen=True)
class Missed:
    """The player did not take exactly their bid; the real count is unknown."""


MISSED = Missed()
Outcome = Union[Made, Missed]


def made_bid(bid: int, outcome: Outcome) -> bool:
    return isinstance(outcome, Made) and outcome.tricks == bid


def outcome_to_wire(outcome: Outcome) -> int:
    """Encode an outcome for clients that still expect -1 for a miss."""
    if isinstance(outcome, Made):
        return outcome.tricks
    return -1


@dataclass
class Player:
    id: str
    name: str
    email: str
    score: int = 0


@dataclass
class Round:
    index: int
    cards_per_hand: int
    trump: Trump
    state: RoundState = RoundState.BIDDING
    bids: Dict[str, int] = field(default_factory=dict)
    tricks: Dict[str, Outcome] = field(default_factory=dict)

    def check_consistency(self, emails: List[str]) -> None:
        """Fail loudly when the populated fields disagree with the state."""
        if self.state is RoundState.BIDDING:
            assert not self.bids and not self.tricks, f"Round {self.index} is BIDDING but holds results."
        elif self.state is RoundState.PLAYING:
            assert sorted(self.bids) == sorted(emails), f"Round {self.index} is PLAYING without a full bid set."
            assert not self.tricks, f"Round {self.index} is PLAYING but holds tricks."
        else:
            assert sorted(self.bids) == sorted(emails), f"Round {self.index} is COMPLETED without a full bid set."
            assert sorted(self.tricks) == sorted(emails), f"Round {self.index} is COMPLETED without a full trick set."


@dataclass
class Game:
    id: str
    name: str
    owner_email: str
    players: List[Player] = field(default_factory=list)
    rounds: List[Round] = field(default_factory=list)
    current_round_index: int = 0
    first_dealer_email: Optional[str] = None
    operator_email: Optional[str] = None

    def emails(self) -> List[str]:
        return [player.email for player in self.players]

    def player(self, email: str) -> Player:
        for player in self.players:
            if player.email == email:
                return player
        raise KeyError(email)

    def round(self, index: int) -> Optional[Round]:
        for candidate in self.rounds:
            if candidate.index == index:
                return candidate
        return None

    def current_round(self) -> Optional[Round]:
        if self.current_round_index == 0:
            return None
        return self.round(self.current_round_index)

    def is_started(self) -> bool:
        return bool(self.rounds)
