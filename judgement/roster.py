"""Seating changes allowed before the first deal."""

from __future__ import annotations

import copy
import uuid
from typing import Optional

from .errors import GameStarted, InvalidAction, PlayerExists
from .state import Game, Player


def _ensure_not_started(game: Game) -> None:
    if game.is_started() or game.current_round_index != 0:
        raise GameStarted("Players and the first dealer are fixed once the game has started.")


def add_player(game: Game, name: str, email: str, player_id: Optional[str] = None) -> Game:
    """Return a copy of ``game`` with a new player seated last."""
    _ensure_not_started(game)
    email = email.strip().lower()
    name = name.strip()
    if not email or not name:
        raise InvalidAction("A player needs both a name and an email.")
    if any(player.email == email for player in game.players):
        raise PlayerExists(f"{email} is already playing in this game.")

    updated = copy.deepcopy(game)
    updated.players.append(Player(id=player_id or uuid.uuid4().hex, name=name, email=email))
    return updated


def set_first_dealer(game: Game, email: Optional[str]) -> Game:
    """Return a copy of ``game`` anchored on ``email`` as the round 1 dealer.

    ``None`` clears the anchor, making the first seat deal first.
    """
    _ensure_not_started(game)
    if email is not None:
        email = email.strip().lower()
        if email not in game.emails():
            raise InvalidAction(f"{email} is not seated in this game.")
    updated = copy.deepcopy(game)
    updated.first_dealer_email = email
    return updated
