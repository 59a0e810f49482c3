"""Round plan generation and dealer rotation for Judgement."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .cards import DECK_SIZE, TRUMP_CYCLE, Trump, trump_for_round
from .state import Player, Round


def max_cards_per_hand(num_players: int, deck_size: int = DECK_SIZE) -> int:
    return deck_size // num_players


def final_round_index(num_players: int, deck_size: int = DECK_SIZE) -> int:
    """Return the 1-based index of the last round, i.e. the plan length."""
    return 2 * max_cards_per_hand(num_players, deck_size) - 1


def round_plan(
    num_players: int,
    *,
    deck_size: int = DECK_SIZE,
    trumps: Sequence[Trump] = TRUMP_CYCLE,
) -> List[Tuple[int, Trump]]:
    """Return ``(cards_per_hand, trump)`` for every round of the game.

    Hand sizes go down from the maximum to a single card and back up again,
    with the one-card round played once. Trumps cycle independently.
    """
    max_cards = max_cards_per_hand(num_players, deck_size)
    sizes = list(range(max_cards, 0, -1)) + list(range(2, max_cards + 1))
    return [(cards, trump_for_round(position, trumps)) for position, cards in enumerate(sizes)]


def build_rounds(
    num_players: int,
    *,
    deck_size: int = DECK_SIZE,
    trumps: Sequence[Trump] = TRUMP_CYCLE,
) -> List[Round]:
    """Materialize the full plan as fresh BIDDING rounds indexed from 1."""
    plan = round_plan(num_players, deck_size=deck_size, trumps=trumps)
    return [Round(index=position + 1, cards_per_hand=cards, trump=trump) for position, (cards, trump) in enumerate(plan)]


def dealer_index(round_index: int, players: Sequence[Player], first_dealer_email: Optional[str] = None) -> int:
    """Seat of the dealer for the given round; the deal passes one seat left per round."""
    if not players:
        raise ValueError("Cannot rotate the deal without players.")
    anchor = 0
    if first_dealer_email:
        for seat, player in enumerate(players):
            if player.email == first_dealer_email:
                anchor = seat
                break
    return (anchor + max(round_index, 1) - 1) % len(players)


def bidding_order(round_index: int, players: Sequence[Player], first_dealer_email: Optional[str] = None) -> List[Player]:
    """Players in bidding order: left of the dealer first, dealer last."""
    dealer = dealer_index(round_index, players, first_dealer_email)
    return list(players[dealer + 1 :]) + list(players[: dealer + 1])
