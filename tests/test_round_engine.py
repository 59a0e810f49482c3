from random import Random

import pytest

from judgement.game import Action, ActionKind, RoundEngine
from judgement.rules_schema import EngineConfig
from judgement.scoring import ledger_consistent
from judgement.state import Game, Made, Player, RoundState

OWNER = "a@test.com"


def new_game(count=3):
    players = [Player(id=str(i), name=f"P{i}", email=f"{'abcdefghijkl'[i]}@test.com") for i in range(count)]
    return Game(id="g1", name="Friday", owner_email=OWNER, players=players)


def small_engine():
    # 9 cards over 3 players: hands of 3, 2, 1, 2, 3.
    return RoundEngine(config=EngineConfig(deck_size=9))


def started(engine, game=None):
    result = engine.start(game or new_game(), OWNER)
    assert result.ok
    return result.game


def zero_bids(game):
    return {email: 0 for email in game.emails()}


def first_player_misses(game):
    tricks = {email: 0 for email in game.emails()}
    tricks[game.players[0].email] = -1
    return tricks


def test_start_materializes_full_plan():
    engine = RoundEngine()
    game = started(engine)

    assert game.current_round_index == 1
    assert len(game.rounds) == 33
    assert engine.final_round_index(game) == 33
    assert game.rounds[0].cards_per_hand == 17
    assert all(r.state is RoundState.BIDDING for r in game.rounds)


def test_start_needs_three_players():
    engine = RoundEngine()
    result = engine.start(new_game(2), OWNER)

    assert not result.ok
    assert result.error.kind == "InsufficientPlayers"
    assert result.game.rounds == []


def test_start_twice_rejected():
    engine = RoundEngine()
    game = started(engine)
    result = engine.start(game, OWNER)
    assert result.error.kind == "InvalidAction"


def test_start_resumes_existing_plan():
    engine = small_engine()
    game = started(engine)
    game.current_round_index = 0

    result = engine.start(game, OWNER)
    assert result.ok
    assert result.game.current_round_index == 1
    assert len(result.game.rounds) == 5


def test_non_owner_is_forbidden_before_validation():
    engine = RoundEngine()
    game = new_game(2)
    result = engine.start(game, "stranger@test.com")

    assert result.error.kind == "Forbidden"
    assert result.game is game


def test_operator_and_configured_operators_may_act():
    game = new_game()
    game.operator_email = "op@test.com"
    assert RoundEngine().start(game, "OP@test.com").ok

    engine = RoundEngine(config=EngineConfig(default_operators=["Admin@Test.com"]))
    assert engine.start(new_game(), "admin@test.com").ok


def test_dealer_constraint_rejection_keeps_round_bidding():
    engine = RoundEngine(config=EngineConfig(deck_size=21))
    game = started(engine)
    assert game.rounds[0].cards_per_hand == 7

    result = engine.submit_bids(game, OWNER, {"a@test.com": 1, "b@test.com": 1, "c@test.com": 5})

    assert result.error.kind == "DealerConstraintViolated"
    assert result.game is game
    assert game.rounds[0].state is RoundState.BIDDING
    assert game.rounds[0].bids == {}


def test_bids_move_round_to_playing():
    engine = small_engine()
    game = started(engine)
    result = engine.submit_bids(game, OWNER, {"a@test.com": 2, "b@test.com": "0", "c@test.com": 0})

    assert result.ok
    round_ = result.game.rounds[0]
    assert round_.state is RoundState.PLAYING
    assert round_.bids == {"a@test.com": 2, "b@test.com": 0, "c@test.com": 0}
    assert game.rounds[0].state is RoundState.BIDDING


def test_tricks_score_and_advance():
    engine = small_engine()
    game = started(engine)
    game = engine.submit_bids(game, OWNER, {"a@test.com": 2, "b@test.com": 0, "c@test.com": 0}).game
    result = engine.submit_tricks(game, OWNER, {"a@test.com": 2, "b@test.com": 0, "c@test.com": -1})

    assert result.ok
    assert result.score_result.points == {"a@test.com": 5, "b@test.com": 3, "c@test.com": 0}
    assert [p.score for p in result.game.players] == [5, 3, 0]
    assert result.game.rounds[0].state is RoundState.COMPLETED
    assert result.game.current_round_index == 2


def test_infeasible_tricks_rejected_without_mutation():
    engine = RoundEngine(config=EngineConfig(deck_size=9))
    game = started(engine)
    for _ in range(2):
        game = engine.submit_bids(game, OWNER, zero_bids(game)).game
        game = engine.submit_tricks(game, OWNER, first_player_misses(game)).game
    assert game.current_round().cards_per_hand == 1

    game = engine.submit_bids(game, OWNER, zero_bids(game)).game
    scores = [p.score for p in game.players]
    result = engine.submit_tricks(game, OWNER, {email: -1 for email in game.emails()})

    assert result.error.kind == "InvalidTrickDistribution"
    assert result.game.current_round().state is RoundState.PLAYING
    assert [p.score for p in result.game.players] == scores

    accepted = engine.submit_tricks(game, OWNER, first_player_misses(game))
    assert accepted.ok


def test_undo_completed_round_reverts_score():
    engine = small_engine()
    game = started(engine)
    game = engine.submit_bids(game, OWNER, {"a@test.com": 2, "b@test.com": 0, "c@test.com": 0}).game
    game = engine.submit_tricks(game, OWNER, {"a@test.com": 2, "b@test.com": 0, "c@test.com": -1}).game
    assert game.players[0].score == 5

    result = engine.undo(game, OWNER, target_round_index=1)

    assert result.ok
    undone = result.game
    assert undone.players[0].score == 0
    assert undone.current_round_index == 1
    assert undone.rounds[0].state is RoundState.PLAYING
    assert undone.rounds[0].tricks == {}
    assert undone.rounds[0].bids == {"a@test.com": 2, "b@test.com": 0, "c@test.com": 0}


def test_undo_then_resubmit_restores_scores():
    engine = small_engine()
    game = started(engine)
    tricks = {"a@test.com": 2, "b@test.com": 0, "c@test.com": -1}
    game = engine.submit_bids(game, OWNER, {"a@test.com": 2, "b@test.com": 0, "c@test.com": 0}).game
    game = engine.submit_tricks(game, OWNER, tricks).game
    before = [p.score for p in game.players]

    game = engine.undo(game, OWNER, 1).game
    game = engine.submit_tricks(game, OWNER, tricks).game

    assert [p.score for p in game.players] == before
    assert game.current_round_index == 2


def test_undo_playing_round_returns_to_bidding():
    engine = small_engine()
    game = started(engine)
    game = engine.submit_bids(game, OWNER, zero_bids(game)).game

    result = engine.undo(game, OWNER)

    assert result.ok
    assert result.game.rounds[0].state is RoundState.BIDDING
    assert result.game.rounds[0].bids == {}


def test_undo_rejections():
    engine = small_engine()
    assert engine.undo(new_game(), OWNER).error.kind == "InvalidAction"

    game = started(engine)
    assert engine.undo(game, OWNER).error.kind == "InvalidAction"
    assert engine.undo(game, OWNER, 9).error.kind == "RoundNotFound"

    for _ in range(2):
        game = engine.submit_bids(game, OWNER, zero_bids(game)).game
        game = engine.submit_tricks(game, OWNER, first_player_misses(game)).game
    assert game.current_round_index == 3
    assert engine.undo(game, OWNER, 1).error.kind == "InvalidAction"

    game = engine.submit_bids(game, OWNER, zero_bids(game)).game
    assert engine.undo(game, OWNER, 2).error.kind == "InvalidAction"


def test_final_round_does_not_advance():
    engine = small_engine()
    game = started(engine)
    for _ in range(5):
        game = engine.submit_bids(game, OWNER, zero_bids(game)).game
        game = engine.submit_tricks(game, OWNER, first_player_misses(game)).game

    assert game.current_round_index == 5
    assert game.rounds[-1].state is RoundState.COMPLETED
    assert engine.is_finished(game)
    assert engine.submit_tricks(game, OWNER, first_player_misses(game)).error.kind == "InvalidAction"
    assert engine.submit_bids(game, OWNER, zero_bids(game)).error.kind == "InvalidAction"
    # b and c made every zero bid: 3 + 2 + 1 + 2 + 3
    assert [p.score for p in game.players] == [0, 11, 11]

    reopened = engine.undo(game, OWNER).game
    assert reopened.current_round_index == 5
    assert reopened.rounds[-1].state is RoundState.PLAYING
    assert not engine.is_finished(reopened)


def test_known_miss_scores_nothing():
    engine = small_engine()
    game = started(engine)
    game = engine.submit_bids(game, OWNER, {"a@test.com": 1, "b@test.com": 1, "c@test.com": 0}).game
    result = engine.submit_tricks(game, OWNER, {"a@test.com": 1, "b@test.com": 2, "c@test.com": 0})

    assert result.ok
    assert result.game.rounds[0].tricks["b@test.com"] == Made(2)
    assert [p.score for p in result.game.players] == [4, 0, 3]


def test_random_action_sequences_keep_invariants():
    engine = small_engine()
    rng = Random(7)
    game = started(engine)

    for _ in range(300):
        round_ = game.current_round()
        kind = rng.choice([ActionKind.BIDS, ActionKind.TRICKS, ActionKind.UNDO])
        if kind is ActionKind.BIDS:
            inputs = {email: rng.randint(0, round_.cards_per_hand) for email in game.emails()}
            action = Action(kind, inputs=inputs)
        elif kind is ActionKind.TRICKS and round_.bids:
            inputs = {email: rng.choice([-1, bid]) for email, bid in round_.bids.items()}
            action = Action(kind, inputs=inputs)
        else:
            target = rng.choice([None, game.current_round_index - 1])
            action = Action(ActionKind.UNDO, target_round_index=target)

        result = engine.apply(game, OWNER, action)
        game = result.game

        assert [r.index for r in game.rounds] == list(range(1, 6))
        assert 1 <= game.current_round_index <= 5
        assert ledger_consistent(game)
        assert all(p.score >= 0 for p in game.players)
        for r in game.rounds:
            if r.bids:
                assert sum(r.bids.values()) != r.cards_per_hand


@pytest.mark.parametrize("kind", [ActionKind.BIDS, ActionKind.TRICKS])
def test_actions_before_start_rejected(kind):
    result = RoundEngine().apply(new_game(), OWNER, Action(kind, inputs={}))
    assert result.error.kind == "InvalidAction"
