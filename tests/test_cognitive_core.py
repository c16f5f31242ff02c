from __future__ import annotations

from brain_trainer.cognitive_core import Outcome, RunningStats, SeededRng, Verdict


def test_score_is_floored_at_zero() -> None:
    stats = RunningStats()
    applied = stats.apply(Verdict(outcome=Outcome.TIMEOUT, score_delta=-10, text=""))
    assert stats.score == 0
    assert applied == 0

    stats.apply(Verdict(outcome=Outcome.CORRECT, score_delta=7, text=""))
    applied = stats.apply(Verdict(outcome=Outcome.INCORRECT, score_delta=-10, text=""))
    assert stats.score == 0
    assert applied == -7


def test_streak_tracks_consecutive_correct_and_best() -> None:
    stats = RunningStats()
    ok = Verdict(outcome=Outcome.CORRECT, score_delta=1, text="", reaction_ms=300)
    bad = Verdict(outcome=Outcome.INCORRECT, score_delta=-5, text="")

    for v in (ok, ok, ok, bad, ok):
        stats.apply(v)

    assert stats.streak == 1
    assert stats.best_streak == 3
    assert stats.total_trials == 5
    assert stats.correct_trials == 4
    assert stats.reaction_times_ms == [300, 300, 300, 300]


def test_untallied_and_streakless_verdicts() -> None:
    stats = RunningStats()
    stats.reset(lives=3)

    stats.apply(Verdict(outcome=Outcome.CORRECT, score_delta=10, text="", streak=False))
    assert stats.streak == 0
    assert stats.total_trials == 1

    stats.apply(Verdict(outcome=Outcome.INCORRECT, score_delta=0, text="", tallied=False, lives_delta=-1))
    assert stats.total_trials == 1
    assert stats.lives == 2


def test_reset_clears_everything() -> None:
    stats = RunningStats(score=40, streak=2, best_streak=5, lives=1, total_trials=3, correct_trials=2)
    stats.reaction_times_ms.append(100)
    stats.reset(lives=3)
    assert stats == RunningStats(lives=3)


def test_seeded_rng_is_reproducible() -> None:
    a = SeededRng(123)
    b = SeededRng(123)
    assert [a.randint(1, 9) for _ in range(20)] == [b.randint(1, 9) for _ in range(20)]
    assert [a.coin() for _ in range(20)] == [b.coin() for _ in range(20)]
