"""Strategic hints: what a player needs this round to move up or stay ahead."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .state import Player


@dataclass
class CatchUpHint:
    target_name: str
    target_score: int
    min_bid: int
    impossible: bool
    min_bid_if_they_make: Optional[int] = None
    impossible_if_they_make: Optional[bool] = None


@dataclass
class StayAheadHint:
    threat_name: str
    threat_score: int
    they_need_bid: int
    you_are_safe: bool


@dataclass
class WinCondition:
    type: str
    message: str


@dataclass
class PredictionHints:
    show: bool
    position: int
    tied_with: List[str] = field(default_factory=list)
    catch_up: Optional[CatchUpHint] = None
    stay_ahead: Optional[StayAheadHint] = None
    win_condition: Optional[WinCondition] = None


def calculate_predictions(
    email: str,
    players: Sequence[Player],
    cards_per_hand: int,
    is_final_round: bool,
) -> PredictionHints:
    """Hints for ``email`` going into a round dealt ``cards_per_hand`` cards.

    A made bid ``b`` is worth ``b + cards_per_hand``, so the cheapest make is
    worth ``cards_per_hand`` and the best is worth twice that.
    """
    max_bid = cards_per_hand
    max_gain = max_bid + cards_per_hand

    ranked = sorted(players, key=lambda player: player.score, reverse=True)
    if all(player.score == 0 for player in ranked):
        return PredictionHints(show=False, position=1)

    me = next((player for player in ranked if player.email == email), None)
    if me is None:
        return PredictionHints(show=False, position=1)

    seat = ranked.index(me)
    tied_with = [player.name for player in ranked if player.score == me.score and player.email != email]
    hints = PredictionHints(show=True, position=seat + 1, tied_with=tied_with)

    if seat > 0:
        above = ranked[seat - 1]
        if above.score == me.score:
            hints.catch_up = CatchUpHint(
                target_name=above.name,
                target_score=above.score,
                min_bid=0,
                impossible=False,
            )
        else:
            gap = above.score - me.score
            # They miss: any make worth gap + 1 passes them.
            need_if_miss = max(0, gap + 1 - cards_per_hand)
            impossible_if_miss = need_if_miss > max_bid
            # They make: they gain at least cards_per_hand.
            need_if_make = max(0, gap + 1)
            hints.catch_up = CatchUpHint(
                target_name=above.name,
                target_score=above.score,
                min_bid=max_bid if impossible_if_miss else need_if_miss,
                impossible=impossible_if_miss,
                min_bid_if_they_make=need_if_make,
                impossible_if_they_make=need_if_make > max_bid,
            )

    if seat < len(ranked) - 1:
        below = ranked[seat + 1]
        gap = me.score - below.score
        they_need = max(0, gap + 1 - cards_per_hand)
        safe = they_need > max_bid
        hints.stay_ahead = StayAheadHint(
            threat_name=below.name,
            threat_score=below.score,
            they_need_bid=max_bid + 1 if safe else they_need,
            you_are_safe=safe,
        )

    if hints.position == 1:
        runner_up = next((player for player in ranked if player.score < me.score), None)
        if runner_up is None:
            if tied_with:
                hints.win_condition = WinCondition("if_others_lose", "Tied for 1st! Any successful bid wins it.")
        else:
            gap = me.score - runner_up.score
            if gap > max_gain:
                hints.win_condition = WinCondition("guaranteed", "Victory secured! No one can catch you.")
            elif is_final_round:
                hints.win_condition = WinCondition("if_others_lose", "If everyone misses, you win!")
            else:
                hints.win_condition = WinCondition("lead_maintained", f"Leading by {gap} pts")
        if tied_with and hints.win_condition is None:
            hints.win_condition = WinCondition("if_others_lose", "Tied! Any made bid wins.")

    return hints


def format_bid_hint(min_bid: int) -> str:
    if min_bid == 0:
        return "Any bid made"
    return f"Bid {min_bid}+"
