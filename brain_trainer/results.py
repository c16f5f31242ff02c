from __future__ import annotations

from dataclasses import dataclass

from .cognitive_core import RunningStats


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """End-of-game report, derived from RunningStats on demand.

    Nothing here is stored alongside the stats; accuracy and reaction-time
    figures are recomputed from the raw counters every time.
    """

    game: str
    final_score: int
    total_trials: int
    correct_trials: int
    accuracy: float
    mean_rt_ms: float
    median_rt_ms: float | None
    best_streak: int
    lives_left: int
    level_reached: int | None = None
    level_name: str | None = None
    round_reached: int | None = None
    won: bool = False


def accuracy(stats: RunningStats) -> float:
    if stats.total_trials <= 0:
        return 0.0
    return stats.correct_trials / stats.total_trials


def mean_reaction_ms(stats: RunningStats) -> float:
    rts = stats.reaction_times_ms
    if not rts:
        return 0.0
    return float(sum(rts)) / float(len(rts))


def median_reaction_ms(stats: RunningStats) -> float | None:
    rts = sorted(stats.reaction_times_ms)
    if not rts:
        return None
    mid = len(rts) // 2
    if len(rts) % 2 == 1:
        return float(rts[mid])
    return float(rts[mid - 1] + rts[mid]) / 2.0


def summarize(
    stats: RunningStats,
    *,
    game: str,
    level: int | None = None,
    level_name: str | None = None,
    round_reached: int | None = None,
    won: bool = False,
) -> SessionSummary:
    return SessionSummary(
        game=str(game),
        final_score=int(stats.score),
        total_trials=int(stats.total_trials),
        correct_trials=int(stats.correct_trials),
        accuracy=float(accuracy(stats)),
        mean_rt_ms=mean_reaction_ms(stats),
        median_rt_ms=median_reaction_ms(stats),
        best_streak=int(stats.best_streak),
        lives_left=int(stats.lives),
        level_reached=level,
        level_name=level_name,
        round_reached=round_reached,
        won=bool(won),
    )


def summary_lines(summary: SessionSummary) -> list[str]:
    lines = [
        "You win!" if summary.won else "Game Over",
        "",
        f"Final score: {summary.final_score}",
        f"Accuracy:    {summary.accuracy * 100.0:.1f}%  ({summary.correct_trials}/{summary.total_trials})",
        f"Avg RT:      {summary.mean_rt_ms:.0f} ms",
        f"Best streak: {summary.best_streak}",
    ]
    if summary.level_reached is not None:
        name = "" if summary.level_name is None else f" - {summary.level_name}"
        lines.append(f"Level:       {summary.level_reached}{name}")
    if summary.round_reached is not None:
        lines.append(f"Round:       {summary.round_reached}")
    return lines
