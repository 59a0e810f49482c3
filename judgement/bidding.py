"""Bid validation and the dealer constraint."""

from __future__ import annotations

import re
from typing import Dict, Iterable, Mapping, Optional, Sequence

from .errors import EngineError
from .state import Player

COUNT_PATTERN = re.compile(r"-?[0-9]+")


class BiddingError(EngineError):
    """Base class for bidding related errors."""

    kind = "BiddingError"


class MissingBid(BiddingError):
    kind = "MissingBid"

    def __init__(self, player: Player) -> None:
        super().__init__(f"Missing bid for {player.name}.")
        self.player = player


class InvalidBidValue(BiddingError):
    """Raised for non-numeric bids or bids outside ``[0, cards_per_hand]``."""

    kind = "InvalidBidValue"


class DealerConstraintViolated(BiddingError):
    """Raised when the bids add up to exactly the hand size."""

    kind = "DealerConstraintViolated"

    def __init__(self, cards_per_hand: int, total: int, dealer: Optional[Player] = None) -> None:
        who = f"Dealer ({dealer.name})" if dealer is not None else "Dealer"
        super().__init__(
            f"{who} must bid such that total bids do not equal {cards_per_hand}. Current total: {total}."
        )
        self.cards_per_hand = cards_per_hand
        self.total = total
        self.dealer = dealer


def parse_count(value: object) -> Optional[int]:
    """Return ``value`` as an int, or None when it is not an integer count.

    Accepts ints and numeric strings; booleans and fractional numbers are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if COUNT_PATTERN.fullmatch(text):
            return int(text)
    return None


def is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_bids(
    raw_bids: Mapping[str, object],
    players: Sequence[Player],
    cards_per_hand: int,
    *,
    dealer: Optional[Player] = None,
) -> Dict[str, int]:
    """Validate one bid per player and the dealer constraint.

    Returns the bids keyed by player email. Players are checked in the order
    given, so passing the bidding order reports the earliest bidder first.

    Raises:
        MissingBid: a player has no bid.
        InvalidBidValue: a bid is not an integer in ``[0, cards_per_hand]``.
        DealerConstraintViolated: the bids sum to ``cards_per_hand``.
    """
    bids: Dict[str, int] = {}
    for player in players:
        raw = raw_bids.get(player.email)
        if is_blank(raw):
            raise MissingBid(player)
        bid = parse_count(raw)
        if bid is None or bid < 0:
            raise InvalidBidValue(f"Invalid bid for {player.name}: must be a non-negative number.")
        if bid > cards_per_hand:
            raise InvalidBidValue(
                f"{player.name} cannot bid {bid}. Maximum bid is {cards_per_hand} (cards dealt per player)."
            )
        bids[player.email] = bid

    total = sum(bids.values())
    if total == cards_per_hand:
        raise DealerConstraintViolated(cards_per_hand, total, dealer)
    return bids


def forbidden_dealer_bid(cards_per_hand: int, other_bids: Iterable[int]) -> Optional[int]:
    """The one bid that would make the total equal the hand size, if any.

    This is a display hint for whoever bids last; the rule itself is on the
    total, so None means every bid in range is allowed.
    """
    forbidden = cards_per_hand - sum(other_bids)
    if 0 <= forbidden <= cards_per_hand:
        return forbidden
    return None
