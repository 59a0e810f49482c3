"""Service layer: storage, per-game locking, notification and read views."""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Mapping, Optional

from . import roster
from .bidding import forbidden_dealer_bid, parse_count
from .cards import trump_label
from .errors import GameNotFound, InvalidAction
from .game import Action, ActionKind, RoundEngine
from .planner import bidding_order, dealer_index
from .predictions import PredictionHints, calculate_predictions
from .rules_schema import EngineConfig
from .scoring import round_points
from .state import Game, Round, RoundState, outcome_to_wire
from .tricks import validate_tricks

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Game], None]


@dataclass
class PlayerView:
    id: str
    name: str
    email: str
    score: int


@dataclass
class RoundView:
    index: int
    cards_per_hand: int
    trump: str
    trump_label: str
    state: str
    bids: dict[str, int]
    tricks: dict[str, int]
    points: dict[str, int]
    dealer_email: str
    bidding_order: list[str]
    forbidden_dealer_bid: Optional[int]


@dataclass
class GameView:
    id: str
    name: str
    owner_email: str
    operator_email: Optional[str]
    first_dealer_email: Optional[str]
    players: list[PlayerView]
    standings: list[PlayerView]
    current_round_index: int
    final_round_index: Optional[int]
    is_finished: bool
    current_round: Optional[RoundView]
    rounds: list[RoundView]


class InMemoryGameRepository:
    """Dictionary-backed store; hands out copies so callers never share state."""

    def __init__(self) -> None:
        self._games: Dict[str, Game] = {}
        self._lock = threading.Lock()

    def load(self, game_id: str) -> Game:
        with self._lock:
            game = self._games.get(game_id)
            if game is None:
                raise GameNotFound(f"Game {game_id} not found.")
            return copy.deepcopy(game)

    def save(self, game: Game) -> None:
        with self._lock:
            self._games[game.id] = copy.deepcopy(game)

    def exists(self, game_id: str) -> bool:
        with self._lock:
            return game_id in self._games


class GameService:
    """Facade around RoundEngine for API handlers.

    Every mutation runs load -> apply -> save -> notify inside a lock keyed by
    game id, so at most one action per game is in flight.
    """

    def __init__(
        self,
        repository: Optional[InMemoryGameRepository] = None,
        engine: Optional[RoundEngine] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.repository = repository or InMemoryGameRepository()
        if engine is None:
            engine = RoundEngine(config=config or EngineConfig())
        self.engine = engine
        self._subscribers: List[Subscriber] = []
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # Lifecycle ---------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def create_game(
        self,
        name: str,
        owner_email: str,
        *,
        owner_name: Optional[str] = None,
        operator_email: Optional[str] = None,
        game_id: Optional[str] = None,
    ) -> GameView:
        owner_email = owner_email.strip().lower()
        if not owner_email:
            raise InvalidAction("A game needs an owner.")
        game = Game(
            id=game_id or uuid.uuid4().hex,
            name=name.strip() or "Untitled Game",
            owner_email=owner_email,
            operator_email=operator_email.strip().lower() if operator_email else None,
        )
        if owner_name:
            game = roster.add_player(game, owner_name, owner_email)
        with self._game_lock(game.id):
            if self.repository.exists(game.id):
                raise InvalidAction(f"Game {game.id} already exists.")
            self.repository.save(game)
        logger.info("Created game %s owned by %s", game.id, owner_email)
        self._notify(game)
        return self.build_game_view(game)

    # Roster ------------------------------------------------------------

    def add_player(self, game_id: str, actor: Optional[str], name: str, email: str) -> GameView:
        with self._game_lock(game_id):
            game = self.repository.load(game_id)
            self.engine.ensure_authorized(game, actor)
            game = roster.add_player(game, name, email)
            self.repository.save(game)
        logger.info("Seated %s in game %s", email, game_id)
        self._notify(game)
        return self.build_game_view(game)

    def set_first_dealer(self, game_id: str, actor: Optional[str], email: Optional[str]) -> GameView:
        with self._game_lock(game_id):
            game = self.repository.load(game_id)
            self.engine.ensure_authorized(game, actor)
            game = roster.set_first_dealer(game, email)
            self.repository.save(game)
        self._notify(game)
        return self.build_game_view(game)

    # Round actions -----------------------------------------------------

    def apply(self, game_id: str, actor: Optional[str], action: Action) -> GameView:
        """Run one engine action; raises the EngineError of a rejection."""
        with self._game_lock(game_id):
            game = self.repository.load(game_id)
            result = self.engine.apply(game, actor, action)
            if not result.ok:
                assert result.error is not None
                raise result.error
            self.repository.save(result.game)
        self._notify(result.game)
        return self.build_game_view(result.game)

    def start(self, game_id: str, actor: Optional[str]) -> GameView:
        return self.apply(game_id, actor, Action(ActionKind.START))

    def submit_bids(self, game_id: str, actor: Optional[str], bids: Mapping[str, object]) -> GameView:
        return self.apply(game_id, actor, Action(ActionKind.BIDS, inputs=dict(bids)))

    def submit_tricks(self, game_id: str, actor: Optional[str], tricks: Mapping[str, object]) -> GameView:
        return self.apply(game_id, actor, Action(ActionKind.TRICKS, inputs=dict(tricks)))

    def undo(self, game_id: str, actor: Optional[str], target_round_index: Optional[int] = None) -> GameView:
        return self.apply(game_id, actor, Action(ActionKind.UNDO, target_round_index=target_round_index))

    # Read side ---------------------------------------------------------

    def get_game_view(self, game_id: str) -> GameView:
        return self.build_game_view(self.repository.load(game_id))

    def get_predictions(self, game_id: str, email: str) -> PredictionHints:
        game = self.repository.load(game_id)
        round_ = game.current_round()
        if round_ is None:
            return PredictionHints(show=False, position=1)
        is_final = round_.index == self.engine.final_round_index(game)
        return calculate_predictions(email.strip().lower(), game.players, round_.cards_per_hand, is_final)

    def dealer_hint(self, game_id: str, partial_bids: Mapping[str, object]) -> Optional[int]:
        """The bid the current dealer may not make, given everyone else's bids."""
        game = self.repository.load(game_id)
        round_ = self._open_round(game, RoundState.BIDDING)
        return self._dealer_hint(game, round_, partial_bids)

    def preview_tricks(self, game_id: str, tricks: Mapping[str, object]) -> Dict[str, int]:
        """Validate a trick report without saving it; returns the points it would award."""
        game = self.repository.load(game_id)
        round_ = self._open_round(game, RoundState.PLAYING)
        outcomes = validate_tricks(tricks, game.players, round_.bids, round_.cards_per_hand)
        return round_points(round_.bids, outcomes, round_.cards_per_hand)

    def build_game_view(self, game: Game) -> GameView:
        players = [PlayerView(id=p.id, name=p.name, email=p.email, score=p.score) for p in game.players]
        rounds = [self._round_view(game, round_) for round_ in game.rounds]
        current = next((view for view in rounds if view.index == game.current_round_index), None)
        return GameView(
            id=game.id,
            name=game.name,
            owner_email=game.owner_email,
            operator_email=game.operator_email,
            first_dealer_email=game.first_dealer_email,
            players=players,
            standings=sorted(players, key=lambda view: view.score, reverse=True),
            current_round_index=game.current_round_index,
            final_round_index=self.engine.final_round_index(game) if game.players else None,
            is_finished=self.engine.is_finished(game),
            current_round=current,
            rounds=rounds,
        )

    # Helpers -----------------------------------------------------------

    def _round_view(self, game: Game, round_: Round) -> RoundView:
        dealer = game.players[dealer_index(round_.index, game.players, game.first_dealer_email)]
        points: dict[str, int] = {}
        if round_.state is RoundState.COMPLETED:
            points = round_points(round_.bids, round_.tricks, round_.cards_per_hand)
        return RoundView(
            index=round_.index,
            cards_per_hand=round_.cards_per_hand,
            trump=str(round_.trump),
            trump_label=trump_label(round_.trump),
            state=str(round_.state),
            bids=dict(round_.bids),
            tricks={email: outcome_to_wire(outcome) for email, outcome in round_.tricks.items()},
            points=points,
            dealer_email=dealer.email,
            bidding_order=[p.email for p in bidding_order(round_.index, game.players, game.first_dealer_email)],
            forbidden_dealer_bid=self._dealer_hint(game, round_, round_.bids),
        )

    def _dealer_hint(self, game: Game, round_: Round, bids: Mapping[str, object]) -> Optional[int]:
        dealer = game.players[dealer_index(round_.index, game.players, game.first_dealer_email)]
        others: List[int] = []
        for player in game.players:
            if player.email == dealer.email:
                continue
            bid = parse_count(bids.get(player.email))
            if bid is not None and bid >= 0:
                others.append(bid)
        return forbidden_dealer_bid(round_.cards_per_hand, others)

    def _open_round(self, game: Game, expected: RoundState) -> Round:
        round_ = game.current_round()
        if round_ is None or round_.state is not expected:
            raise InvalidAction(f"No round is currently in {expected}.")
        return round_

    @contextmanager
    def _game_lock(self, game_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(game_id, threading.Lock())
        with lock:
            yield

    def _notify(self, game: Game) -> None:
        for callback in list(self._subscribers):
            try:
                callback(game.id, copy.deepcopy(game))
            except Exception:
                logger.exception("Subscriber failed for game %s", game.id)
