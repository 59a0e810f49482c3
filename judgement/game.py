"""Round engine: the START/BIDS/TRICKS/UNDO state machine for Judgement."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, Mapping, Optional

from .bidding import validate_bids
from .errors import EngineError, Forbidden, InsufficientPlayers, InvalidAction, RoundNotFound
from .planner import bidding_order, build_rounds, dealer_index, final_round_index
from .rules_schema import EngineConfig
from .scoring import RoundScoreResult, apply_round_scores, ledger_consistent, revert_round_scores
from .state import Game, Round, RoundState
from .tricks import validate_tricks

logger = logging.getLogger(__name__)


class ActionKind(Enum):
    START = auto()
    BIDS = auto()
    TRICKS = auto()
    UNDO = auto()


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    inputs: Mapping[str, object] = field(default_factory=dict)
    target_round_index: Optional[int] = None


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one engine action.

    On rejection ``game`` is the snapshot that was passed in, untouched.
    """

    game: Game
    error: Optional[EngineError] = None
    score_result: Optional[RoundScoreResult] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RoundEngine:
    """Apply one action to a game snapshot and return the next snapshot."""

    config: EngineConfig = field(default_factory=EngineConfig)

    # Authorization -----------------------------------------------------

    def is_authorized(self, game: Game, actor: Optional[str]) -> bool:
        if not actor:
            return False
        actor = actor.strip().lower()
        allowed = {game.owner_email.lower()}
        if game.operator_email:
            allowed.add(game.operator_email.lower())
        allowed.update(self.config.default_operators)
        return actor in allowed

    def ensure_authorized(self, game: Game, actor: Optional[str]) -> None:
        if not self.is_authorized(game, actor):
            raise Forbidden("Only the game owner or operator can update rounds.")

    # Entry point -------------------------------------------------------

    def apply(self, game: Game, actor: Optional[str], action: Action) -> ActionResult:
        handlers: Dict[ActionKind, Callable[[Game, Action], Optional[RoundScoreResult]]] = {
            ActionKind.START: self._start,
            ActionKind.BIDS: self._bids,
            ActionKind.TRICKS: self._tricks,
            ActionKind.UNDO: self._undo,
        }
        working = copy.deepcopy(game)
        try:
            self.ensure_authorized(game, actor)
            score_result = handlers[action.kind](working, action)
        except EngineError as exc:
            logger.warning("Rejected %s on game %s: %s (%s)", action.kind.name, game.id, exc.kind, exc)
            return ActionResult(game=game, error=exc)

        self.check_invariants(working)
        logger.info(
            "Applied %s on game %s; current round %d",
            action.kind.name,
            working.id,
            working.current_round_index,
        )
        return ActionResult(game=working, score_result=score_result)

    def start(self, game: Game, actor: Optional[str]) -> ActionResult:
        return self.apply(game, actor, Action(ActionKind.START))

    def submit_bids(self, game: Game, actor: Optional[str], bids: Mapping[str, object]) -> ActionResult:
        return self.apply(game, actor, Action(ActionKind.BIDS, inputs=bids))

    def submit_tricks(self, game: Game, actor: Optional[str], tricks: Mapping[str, object]) -> ActionResult:
        return self.apply(game, actor, Action(ActionKind.TRICKS, inputs=tricks))

    def undo(self, game: Game, actor: Optional[str], target_round_index: Optional[int] = None) -> ActionResult:
        return self.apply(game, actor, Action(ActionKind.UNDO, target_round_index=target_round_index))

    # Queries -----------------------------------------------------------

    def final_round_index(self, game: Game) -> int:
        return final_round_index(len(game.players), self.config.deck_size)

    def is_finished(self, game: Game) -> bool:
        if not game.rounds or game.current_round_index == 0:
            return False
        final = game.round(self.final_round_index(game))
        return final is not None and final.state is RoundState.COMPLETED

    # Handlers ----------------------------------------------------------

    def _start(self, game: Game, action: Action) -> None:
        if game.current_round_index != 0:
            raise InvalidAction("Game has already started.")
        if len(game.players) < self.config.min_players:
            raise InsufficientPlayers(
                f"Cannot start game. Minimum {self.config.min_players} players required. "
                f"Currently {len(game.players)} player(s)."
            )
        if not game.rounds:
            if self.config.deck_size // len(game.players) < 1:
                raise InvalidAction(f"A {self.config.deck_size}-card deck cannot deal to {len(game.players)} players.")
            game.rounds = build_rounds(
                len(game.players),
                deck_size=self.config.deck_size,
                trumps=self.config.trumps(),
            )
        game.current_round_index = 1
        return None

    def _bids(self, game: Game, action: Action) -> None:
        round_ = self._require_current_round(game)
        if round_.state is not RoundState.BIDDING:
            raise InvalidAction(f"Round {round_.index} is not accepting bids.")

        dealer = game.players[dealer_index(round_.index, game.players, game.first_dealer_email)]
        order = bidding_order(round_.index, game.players, game.first_dealer_email)
        round_.bids = validate_bids(action.inputs, order, round_.cards_per_hand, dealer=dealer)
        round_.state = RoundState.PLAYING
        return None

    def _tricks(self, game: Game, action: Action) -> RoundScoreResult:
        round_ = self._require_current_round(game)
        if round_.state is not RoundState.PLAYING:
            raise InvalidAction(f"Round {round_.index} is not accepting tricks.")

        round_.tricks = validate_tricks(action.inputs, game.players, round_.bids, round_.cards_per_hand)
        round_.state = RoundState.COMPLETED
        result = apply_round_scores(game.players, round_)

        if game.current_round_index < self.final_round_index(game):
            game.current_round_index += 1
        return result

    def _undo(self, game: Game, action: Action) -> Optional[RoundScoreResult]:
        if game.current_round_index == 0:
            raise InvalidAction("Game has not started.")
        target_index = action.target_round_index
        if target_index is None:
            target_index = game.current_round_index
        if target_index < 1:
            raise InvalidAction("Invalid target round index.")
        target = game.round(target_index)
        if target is None:
            raise RoundNotFound(f"Round {target_index} not found.")

        if target_index != game.current_round_index:
            current = game.current_round()
            reopens_previous = (
                target_index == game.current_round_index - 1
                and target.state is RoundState.COMPLETED
                and current is not None
                and current.state is RoundState.BIDDING
            )
            if not reopens_previous:
                raise InvalidAction("Can only undo the current round or the round just completed.")

        if target.state is RoundState.PLAYING:
            target.bids = {}
            target.tricks = {}
            target.state = RoundState.BIDDING
            return None

        if target.state is RoundState.COMPLETED:
            result = revert_round_scores(game.players, target)
            target.tricks = {}
            target.state = RoundState.PLAYING
            if game.current_round_index > target_index:
                game.current_round_index = target_index
            return result

        raise InvalidAction(f"Round {target_index} has nothing to undo.")

    # Helpers -----------------------------------------------------------

    def _require_current_round(self, game: Game) -> Round:
        if game.current_round_index == 0:
            raise InvalidAction("Game has not started.")
        round_ = game.current_round()
        if round_ is None:
            raise RoundNotFound(f"Round {game.current_round_index} not found.")
        return round_

    def check_invariants(self, game: Game) -> None:
        """Assert the per-game invariants; a failure is a bug, not a rejection."""
        indices = [round_.index for round_ in game.rounds]
        assert indices == list(range(1, len(indices) + 1)), f"Round indices are not contiguous: {indices}"
        if game.current_round_index == 0:
            return
        current = game.current_round()
        assert current is not None, f"Current round {game.current_round_index} does not exist."
        if current.state is RoundState.COMPLETED:
            assert current.index == self.final_round_index(game), "Only the final round may stay current once completed."

        emails = game.emails()
        for round_ in game.rounds:
            round_.check_consistency(emails)
            if round_.bids:
                assert sum(round_.bids.values()) != round_.cards_per_hand, (
                    f"Round {round_.index} bids break the dealer constraint."
                )
        assert ledger_consistent(game), "Player scores do not match the completed rounds."
