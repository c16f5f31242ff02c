from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import pytest

from brain_trainer.cognitive_core import Outcome
from brain_trainer.math_memory import (
    MEMORY_GAP_S,
    RECALL_FEEDBACK_S,
    MathMemoryGame,
    MathMemoryState,
    PlayingStage,
    build_math_memory_game,
)


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _step_until(
    clock: FakeClock,
    engine: MathMemoryGame,
    done: Callable[[], bool],
    *,
    dt: float = 0.1,
    max_steps: int = 500,
) -> None:
    for _ in range(max_steps):
        if done():
            return
        clock.advance(dt)
        engine.update()
    raise AssertionError(f"condition not reached in {max_steps} steps")


def _play_round(clock: FakeClock, engine: MathMemoryGame, *, recall_correct: bool = True) -> int:
    """Answer every problem correctly, then recall. Returns problems seen."""

    problems = 0
    for _ in range(engine.config.sequence_length - 1):
        _step_until(clock, engine, lambda: engine.stage is PlayingStage.MATH)
        problem = engine.current_problem
        assert problem is not None
        trial_id = engine.snapshot().trial_id
        assert trial_id is not None
        assert engine.submit_math(trial_id, str(problem.answer)) is True
        problems += 1

    _step_until(clock, engine, lambda: engine.state is MathMemoryState.RECALL)
    assert len(engine.sequence) == engine.config.sequence_length
    answer = ", ".join(item.lower() for item in engine.sequence) if recall_correct else "nope"
    trial_id = engine.active_trial_id
    assert trial_id is not None
    assert engine.submit_recall(trial_id, answer) is True
    assert engine.state is MathMemoryState.FEEDBACK

    clock.advance(RECALL_FEEDBACK_S)
    engine.update()
    return problems


def test_round_interleaves_items_and_problems() -> None:
    clock = FakeClock()
    engine = build_math_memory_game(clock=clock, seed=1)
    engine.start(1)
    assert engine.state is MathMemoryState.PLAYING
    assert engine.stage is PlayingStage.MEMORIZE
    assert engine.snapshot().payload.memory_item == engine.current_item

    problems = _play_round(clock, engine)
    assert problems == 2
    assert engine.stats.total_trials == 2
    assert engine.stats.correct_trials == 2
    assert engine.stats.score == 2 * 10 + 50
    assert engine.stats.streak == 1
    assert engine.round == 2


@pytest.mark.parametrize("level", [1, 3, 6])
def test_every_level_shows_sequence_length_items(level: int) -> None:
    clock = FakeClock()
    engine = build_math_memory_game(clock=clock, seed=level)
    engine.start(level)
    seq_len = engine.config.sequence_length

    problems = _play_round(clock, engine)
    assert problems == seq_len - 1
    assert engine.stats.total_trials == seq_len - 1


def test_level_one_cleared_advances_to_level_two() -> None:
    clock = FakeClock()
    engine = build_math_memory_game(clock=clock, seed=42)
    engine.start(1)

    for expected_round in range(1, 6):
        assert (engine.level, engine.round) == (1, expected_round)
        _play_round(clock, engine)

    assert engine.state is MathMemoryState.PLAYING
    assert (engine.level, engine.round) == (2, 1)
    assert engine.stats.lives == 3
    assert engine.stats.streak == 5
    assert engine.snapshot().level_name == "Easy"


def test_three_failed_recalls_end_the_game() -> None:
    clock = FakeClock()
    engine = build_math_memory_game(clock=clock, seed=7)
    engine.start(3)
    _play_round(clock, engine)
    assert engine.round == 2

    for lives_left in (2, 1):
        _play_round(clock, engine, recall_correct=False)
        assert engine.stats.lives == lives_left
        assert engine.state is MathMemoryState.PLAYING
        assert (engine.level, engine.round) == (3, 2)
        assert engine.stats.streak == 0

    _play_round(clock, engine, recall_correct=False)
    assert engine.state is MathMemoryState.GAME_OVER
    assert engine.stats.lives == 0
    assert engine.sequence == ()

    s = engine.summary
    assert s is not None
    assert s.won is False
    assert (s.level_reached, s.round_reached) == (3, 2)
    assert s.best_streak == 1
    assert "Game Over" in engine.snapshot().prompt

    clock.advance(30.0)
    engine.update()
    assert engine.state is MathMemoryState.GAME_OVER


def test_clearing_the_top_level_wins() -> None:
    clock = FakeClock()
    engine = MathMemoryGame(clock=clock, seed=3, rounds_per_level=1)
    engine.start(6)
    _play_round(clock, engine)

    assert engine.state is MathMemoryState.GAME_OVER
    assert engine.summary is not None and engine.summary.won is True
    assert engine.summary.level_reached == 6


def test_math_timeout_penalises_and_moves_on() -> None:
    clock = FakeClock()
    engine = build_math_memory_game(clock=clock, seed=5)
    engine.start(1)
    _step_until(clock, engine, lambda: engine.stage is PlayingStage.MATH)
    trial_id = engine.active_trial_id
    assert engine.time_remaining_s() == engine.config.math_time_s

    clock.advance(engine.config.math_time_s)
    engine.update()
    assert engine.stage is PlayingStage.MATH_FEEDBACK
    assert engine.feedback is not None and engine.feedback.outcome is Outcome.TIMEOUT
    assert engine.stats.total_trials == 1
    assert engine.stats.score == 0
    assert engine.submit_math(trial_id, "1") is False

    # Timeout feedback lingers a full second before the next item.
    clock.advance(0.9)
    engine.update()
    assert engine.stage is PlayingStage.MATH_FEEDBACK
    clock.advance(0.2)
    engine.update()
    assert engine.stage is PlayingStage.MEMORIZE
    assert len(engine.sequence) == 1


def test_malformed_math_answer_is_simply_wrong() -> None:
    clock = FakeClock()
    engine = build_math_memory_game(clock=clock, seed=5)
    engine.start(1)
    _step_until(clock, engine, lambda: engine.stage is PlayingStage.MATH)
    trial_id = engine.active_trial_id

    assert engine.submit_math(trial_id, "") is False
    assert engine.submit_math(trial_id, "12abc") is True
    assert engine.feedback is not None and engine.feedback.outcome is Outcome.INCORRECT
    assert engine.stats.total_trials == 1
    assert engine.submit_math(trial_id, "12") is False


def test_submissions_outside_their_stage_are_rejected() -> None:
    clock = FakeClock()
    engine = build_math_memory_game(clock=clock, seed=5)
    assert engine.submit_recall(1, "A") is False

    engine.start(1)
    assert engine.submit_math(1, "3") is False
    assert engine.submit_recall(1, "A") is False
    assert engine.stats.total_trials == 0


def test_memorize_countdown_and_gap() -> None:
    clock = FakeClock()
    engine = build_math_memory_game(clock=clock, seed=5)
    engine.start(1)
    assert engine.time_remaining_s() == 2.0

    clock.advance(2.0)
    engine.update()
    assert engine.stage is PlayingStage.GAP
    assert len(engine.sequence) == 1
    assert engine.time_remaining_s() is None

    clock.advance(MEMORY_GAP_S)
    engine.update()
    assert engine.stage is PlayingStage.MATH


def test_navigate_away_cancels_every_pending_action() -> None:
    clock = FakeClock()
    engine = build_math_memory_game(clock=clock, seed=5)
    engine.start(2)
    _step_until(clock, engine, lambda: engine.stage is PlayingStage.MATH)

    engine.navigate_away()
    assert engine.state is MathMemoryState.MENU
    assert engine.active_trial_id is None

    clock.advance(120.0)
    engine.update()
    assert engine.state is MathMemoryState.MENU
    assert engine.stats.total_trials == 0
    assert engine.snapshot().payload is None


def test_reset_from_game_over_allows_a_new_game() -> None:
    clock = FakeClock()
    engine = MathMemoryGame(clock=clock, seed=4, lives=1)
    engine.start(1)
    _play_round(clock, engine, recall_correct=False)
    assert engine.state is MathMemoryState.GAME_OVER

    engine.start(2)
    assert engine.state is MathMemoryState.GAME_OVER

    engine.reset()
    assert engine.state is MathMemoryState.MENU
    engine.start(2)
    assert engine.state is MathMemoryState.PLAYING
    assert engine.level == 2
    assert engine.stats.lives == 1
    assert engine.stats.score == 0


def test_invalid_construction_and_level() -> None:
    with pytest.raises(ValueError):
        MathMemoryGame(clock=FakeClock(), lives=0)
    engine = build_math_memory_game(clock=FakeClock(), seed=1)
    with pytest.raises(ValueError):
        engine.start(7)
