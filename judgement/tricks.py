"""Trick report validation and distribution feasibility."""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Mapping, Sequence, Tuple

from .bidding import is_blank, parse_count
from .errors import EngineError
from .state import MISSED, Made, Missed, Outcome, Player, made_bid

MISSED_WIRE_VALUE = -1
MISSED_LABELS = {"missed", "miss", "x"}


class TrickError(EngineError):
    """Base class for trick report errors."""

    kind = "TrickError"


class MissingTrick(TrickError):
    kind = "MissingTrick"

    def __init__(self, player: Player) -> None:
        super().__init__(f"Missing tricks for {player.name}.")
        self.player = player


class InvalidTrickValue(TrickError):
    kind = "InvalidTrickValue"


class TricksOverCommitted(TrickError):
    """Raised when the reported makes account for more tricks than were dealt."""

    kind = "TricksOverCommitted"


class TricksUnaccountedFor(TrickError):
    """Raised when nobody missed but the makes do not cover every trick."""

    kind = "TricksUnaccountedFor"


class InvalidTrickDistribution(TrickError):
    """Raised when no split of the remaining tricks fits the missed players."""

    kind = "InvalidTrickDistribution"

    def __init__(self, remaining: int, missed_bids: Sequence[int]) -> None:
        super().__init__(
            f"Invalid: {remaining} trick(s) cannot be split among the players who missed "
            f"(bids {list(missed_bids)}) without one of them making their bid."
        )
        self.remaining = remaining
        self.missed_bids = tuple(missed_bids)


def parse_outcome(raw: object, player: Player, cards_per_hand: int) -> Outcome:
    """Convert a submitted value into an Outcome.

    ``-1`` and the labels in MISSED_LABELS mean the player missed; integers in
    ``[0, cards_per_hand]`` are the tricks the player took.
    """
    if isinstance(raw, (Made, Missed)):
        outcome = raw
    elif isinstance(raw, str) and raw.strip().lower() in MISSED_LABELS:
        return MISSED
    else:
        count = parse_count(raw)
        if count is None or (count < 0 and count != MISSED_WIRE_VALUE):
            raise InvalidTrickValue(
                f"Invalid tricks for {player.name}: must be a non-negative number (or -1 for missed bid)."
            )
        if count == MISSED_WIRE_VALUE:
            return MISSED
        outcome = Made(count)

    if isinstance(outcome, Made) and not 0 <= outcome.tricks <= cards_per_hand:
        raise InvalidTrickValue(f"{player.name} cannot have more than {cards_per_hand} tricks.")
    return outcome


def distribution_feasible(remaining: int, missed_bids: Sequence[int]) -> bool:
    """Whether ``remaining`` tricks can be split so no missed player hits their bid.

    Each missed player takes some ``t`` in ``[0, remaining]`` with ``t`` not equal
    to their bid, and the takes must add up to exactly ``remaining``.
    """
    bids = tuple(missed_bids)

    @lru_cache(maxsize=None)
    def feasible(left: int, position: int) -> bool:
        if position == len(bids):
            return left == 0
        bid = bids[position]
        for taken in range(left + 1):
            if taken != bid and feasible(left - taken, position + 1):
                return True
        return False

    if remaining < 0:
        return False
    return feasible(remaining, 0)


def validate_tricks(
    raw_tricks: Mapping[str, object],
    players: Sequence[Player],
    bids: Mapping[str, int],
    cards_per_hand: int,
) -> Dict[str, Outcome]:
    """Validate a full trick report against the round's bids.

    A player reported with an exact count different from their bid is a miss
    whose count is known; those tricks are taken out of the pool before the
    unknown misses are checked.

    Raises:
        MissingTrick, InvalidTrickValue: incomplete or malformed input.
        TricksOverCommitted: reported counts exceed the hand size.
        TricksUnaccountedFor: nobody missed, yet tricks remain.
        InvalidTrickDistribution: the unknown misses cannot absorb the rest.
    """
    outcomes: Dict[str, Outcome] = {}
    for player in players:
        raw = raw_tricks.get(player.email)
        if is_blank(raw):
            raise MissingTrick(player)
        outcomes[player.email] = parse_outcome(raw, player, cards_per_hand)

    made_players: List[Player] = []
    known_misses: List[Tuple[Player, int]] = []
    missed_bids: List[int] = []
    for player in players:
        outcome = outcomes[player.email]
        bid = bids[player.email]
        if made_bid(bid, outcome):
            made_players.append(player)
        elif isinstance(outcome, Made):
            known_misses.append((player, outcome.tricks))
        else:
            missed_bids.append(bid)

    sum_made_bids = sum(bids[player.email] for player in made_players)
    if sum_made_bids > cards_per_hand:
        names = ", ".join(player.name for player in made_players)
        raise TricksOverCommitted(
            f"Invalid: The sum of tricks for players who made their bids ({sum_made_bids}) exceeds the "
            f"total tricks available ({cards_per_hand}). Players who made their bids: {names}. "
            "At least one of these players must have missed their bid."
        )

    known_total = sum_made_bids + sum(tricks for _, tricks in known_misses)
    if known_total > cards_per_hand:
        raise TricksOverCommitted(
            f"Invalid: {known_total} tricks are reported but only {cards_per_hand} were played."
        )

    remaining = cards_per_hand - known_total
    if not missed_bids:
        if remaining != 0:
            raise TricksUnaccountedFor(
                f"Invalid: Only {known_total} out of {cards_per_hand} tricks are accounted for. There are "
                f"{remaining} unaccounted trick(s). At least one player must have missed their bid."
            )
        return outcomes

    if not distribution_feasible(remaining, missed_bids):
        raise InvalidTrickDistribution(remaining, missed_bids)
    return outcomes
