from __future__ import annotations

import math

from brain_trainer.cognitive_core import RunningStats
from brain_trainer.results import accuracy, mean_reaction_ms, median_reaction_ms, summarize, summary_lines


def test_empty_stats_project_to_zero() -> None:
    stats = RunningStats()
    assert accuracy(stats) == 0.0
    assert mean_reaction_ms(stats) == 0.0
    assert median_reaction_ms(stats) is None

    s = summarize(stats, game="Task Switching")
    assert s.accuracy == 0.0
    assert any("0.0%" in line for line in summary_lines(s))


def test_derived_values() -> None:
    stats = RunningStats(score=120, total_trials=4, correct_trials=3, best_streak=2, lives=1)
    stats.reaction_times_ms.extend([400, 200, 600])

    assert math.isclose(accuracy(stats), 0.75)
    assert math.isclose(mean_reaction_ms(stats), 400.0)
    assert median_reaction_ms(stats) == 400.0

    stats.reaction_times_ms.append(1000)
    assert median_reaction_ms(stats) == 500.0

    s = summarize(stats, game="Math + Memory", level=3, level_name="Medium", round_reached=2, won=False)
    assert s.final_score == 120
    assert s.level_reached == 3
    lines = summary_lines(s)
    assert lines[0] == "Game Over"
    assert "Level:       3 - Medium" in lines
