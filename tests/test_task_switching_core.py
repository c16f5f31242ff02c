from __future__ import annotations

from collections import Counter

from brain_trainer.cognitive_core import Outcome, SeededRng
from brain_trainer.task_switching import (
    KEY_EVEN_OR_ROUND,
    KEY_ODD_OR_ANGULAR,
    SHAPES,
    BoxSide,
    Shape,
    TaskSwitchingGenerator,
    TaskSwitchingJudge,
    TaskSwitchingTrial,
    correct_points,
    expected_key,
)

ROUND = Shape("circle", True)
ANGULAR = Shape("square", False)


def test_generator_is_deterministic_for_same_seed() -> None:
    g1 = TaskSwitchingGenerator(SeededRng(12345))
    g2 = TaskSwitchingGenerator(SeededRng(12345))
    assert [g1.next_trial() for _ in range(20)] == [g2.next_trial() for _ in range(20)]


def test_generator_covers_exact_ranges() -> None:
    gen = TaskSwitchingGenerator(SeededRng(7))
    trials = [gen.next_trial() for _ in range(3000)]

    assert {t.digit for t in trials} == set(range(1, 10))
    assert {t.box for t in trials} == {BoxSide.TOP, BoxSide.BOTTOM}
    assert {t.shape for t in trials} == set(SHAPES)

    boxes = Counter(t.box for t in trials)
    assert 1200 < boxes[BoxSide.TOP] < 1800


def test_shape_catalog() -> None:
    assert len(SHAPES) == 7
    assert {s.name for s in SHAPES if s.is_round} == {"circle", "heart", "octagon"}


def test_expected_key_top_box_uses_parity() -> None:
    assert expected_key(TaskSwitchingTrial(BoxSide.TOP, 4, ANGULAR)) == KEY_EVEN_OR_ROUND
    assert expected_key(TaskSwitchingTrial(BoxSide.TOP, 7, ROUND)) == KEY_ODD_OR_ANGULAR


def test_expected_key_bottom_box_uses_shape() -> None:
    assert expected_key(TaskSwitchingTrial(BoxSide.BOTTOM, 3, ROUND)) == KEY_EVEN_OR_ROUND
    assert expected_key(TaskSwitchingTrial(BoxSide.BOTTOM, 8, ANGULAR)) == KEY_ODD_OR_ANGULAR


def test_correct_points_decay_with_reaction_time() -> None:
    assert correct_points(0) == 100
    assert correct_points(19) == 100
    assert correct_points(400) == 80
    assert correct_points(1790) == 11
    assert correct_points(1800) == 10
    assert correct_points(2499) == 10


def test_judge_scores_correct_wrong_and_timeout() -> None:
    judge = TaskSwitchingJudge()
    trial = TaskSwitchingTrial(BoxSide.TOP, 2, ANGULAR)

    ok = judge.judge(trial, "Q", 500)
    assert ok.outcome is Outcome.CORRECT
    assert ok.score_delta == 75
    assert ok.reaction_ms == 500

    wrong = judge.judge(trial, "p", 500)
    assert wrong.outcome is Outcome.INCORRECT
    assert wrong.score_delta == -5
    assert wrong.reaction_ms is None

    timeout = judge.judge(trial, None, None)
    assert timeout.outcome is Outcome.TIMEOUT
    assert timeout.score_delta == -10
    assert timeout.reaction_ms is None
    assert timeout.score_delta < wrong.score_delta


def test_judge_only_accepts_the_two_response_keys() -> None:
    judge = TaskSwitchingJudge()
    assert judge.accepts("q") and judge.accepts("P")
    assert not judge.accepts("x")
    assert not judge.accepts("")
