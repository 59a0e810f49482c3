"""Round scoring and the reversible score ledger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Sequence

from .state import Game, Outcome, Player, Round, RoundState, made_bid


@dataclass(frozen=True)
class RoundScoreResult:
    round_index: int
    points: Dict[str, int]
    new_scores: Dict[str, int]


def bid_points(bid: int, outcome: Outcome, cards_per_hand: int) -> int:
    """A made bid earns the bid plus the hand size; anything else earns nothing."""
    if made_bid(bid, outcome):
        return bid + cards_per_hand
    return 0


def round_points(
    bids: Mapping[str, int],
    tricks: Mapping[str, Outcome],
    cards_per_hand: int,
) -> Dict[str, int]:
    return {email: bid_points(bid, tricks[email], cards_per_hand) for email, bid in bids.items()}


def apply_round_scores(players: Sequence[Player], round_: Round) -> RoundScoreResult:
    """Add the round's points to each player's cumulative score.

    Must run exactly once per completion; the state machine guards that.
    """
    points = round_points(round_.bids, round_.tricks, round_.cards_per_hand)
    for player in players:
        player.score += points.get(player.email, 0)
    return RoundScoreResult(
        round_index=round_.index,
        points=points,
        new_scores={player.email: player.score for player in players},
    )


def revert_round_scores(players: Sequence[Player], round_: Round) -> RoundScoreResult:
    """Take a completed round's points back off, never dropping below 0."""
    points = round_points(round_.bids, round_.tricks, round_.cards_per_hand)
    for player in players:
        player.score = max(0, player.score - points.get(player.email, 0))
    return RoundScoreResult(
        round_index=round_.index,
        points={email: -value for email, value in points.items()},
        new_scores={player.email: player.score for player in players},
    )


def recompute_scores(game: Game) -> Dict[str, int]:
    """Rebuild every cumulative score from the completed rounds."""
    totals = {player.email: 0 for player in game.players}
    for round_ in game.rounds:
        if round_.state is not RoundState.COMPLETED:
            continue
        for email, value in round_points(round_.bids, round_.tricks, round_.cards_per_hand).items():
            if email in totals:
                totals[email] += value
    return totals


def ledger_consistent(game: Game) -> bool:
    expected = recompute_scores(game)
    return all(player.score == expected[player.email] for player in game.players)
