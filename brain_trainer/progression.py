"""Round/level progression policy.

Math + Memory: a level is ``rounds_per_level`` rounds, each ending in one
recall check. A correct recall advances the round (or the level after the
last round, or wins the game at the top level); a failed recall costs a life
and repeats the round until lives run out. Lives are per game, not per level,
and live in the engine's :class:`RunningStats`.

Task Switching has no levels: :class:`TrialQuota` just counts resolved trials.
"""

from __future__ import annotations

from enum import Enum

from .cognitive_core import RunningStats
from .levels import MAX_LEVEL, MIN_LEVEL


class Advance(str, Enum):
    NEXT_ROUND = "next_round"
    NEXT_LEVEL = "next_level"
    RETRY_ROUND = "retry_round"
    WIN = "win"
    GAME_OVER = "game_over"


class LevelProgression:
    def __init__(
        self,
        stats: RunningStats,
        *,
        start_level: int = MIN_LEVEL,
        max_level: int = MAX_LEVEL,
        rounds_per_level: int = 5,
    ) -> None:
        if not (MIN_LEVEL <= start_level <= max_level):
            raise ValueError(f"start_level must be in [{MIN_LEVEL}, {max_level}]")
        if rounds_per_level < 1:
            raise ValueError("rounds_per_level must be >= 1")

        self._stats = stats
        self._max_level = int(max_level)
        self._rounds_per_level = int(rounds_per_level)
        self._level = int(start_level)
        self._round = 1
        self._finished = False
        self._won = False

    @property
    def level(self) -> int:
        return self._level

    @property
    def round(self) -> int:
        return self._round

    @property
    def rounds_per_level(self) -> int:
        return self._rounds_per_level

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def won(self) -> bool:
        return self._won

    def decide(self, correct: bool) -> Advance:
        """Decide what follows a recall. Lives must already reflect it."""

        if self._finished:
            raise RuntimeError("Progression already finished")
        if not correct:
            return Advance.GAME_OVER if self._stats.lives <= 0 else Advance.RETRY_ROUND
        if self._round >= self._rounds_per_level:
            return Advance.WIN if self._level >= self._max_level else Advance.NEXT_LEVEL
        return Advance.NEXT_ROUND

    def apply(self, advance: Advance) -> None:
        if advance is Advance.NEXT_ROUND:
            self._round += 1
        elif advance is Advance.NEXT_LEVEL:
            self._level += 1
            self._round = 1
        elif advance in (Advance.WIN, Advance.GAME_OVER):
            self._finished = True
            self._won = advance is Advance.WIN


class TrialQuota:
    """Fixed number of resolved trials (correct, incorrect or timed out)."""

    def __init__(self, total: int) -> None:
        if total < 1:
            raise ValueError("total must be >= 1")
        self._total = int(total)
        self._done = 0

    @property
    def total(self) -> int:
        return self._total

    @property
    def done(self) -> int:
        return self._done

    @property
    def exhausted(self) -> bool:
        return self._done >= self._total

    def record(self) -> bool:
        """Count one resolved trial; returns True once the quota is used up."""

        self._done += 1
        return self.exhausted

    def reset(self) -> None:
        self._done = 0
