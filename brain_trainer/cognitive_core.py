from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, TypeVar

from .clock import Clock, DeferredScheduler, TrialClock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Outcome(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class Verdict:
    """What a judge decided about one resolved trial.

    ``tallied`` trials count towards total/correct trials (accuracy),
    ``streak`` trials move the streak, ``lives_delta`` is applied to lives.
    """

    outcome: Outcome
    score_delta: int
    text: str
    reaction_ms: int | None = None
    tallied: bool = True
    streak: bool = True
    lives_delta: int = 0

    @property
    def is_correct(self) -> bool:
        return self.outcome is Outcome.CORRECT


@dataclass(frozen=True, slots=True)
class Feedback:
    """Last outcome, as shown to the player."""

    outcome: Outcome
    text: str
    score_delta: int


class Judge(Protocol):
    def accepts(self, raw: str) -> bool:
        """Return False for input that is not a response at all (ignored)."""
        ...

    def judge(self, stimulus: Any, raw: str | None, reaction_ms: int | None) -> Verdict:
        """Score a response; ``raw is None`` means the deadline expired."""
        ...


@dataclass(slots=True)
class RunningStats:
    """Mutable per-game accumulator owned by a single engine."""

    score: int = 0
    streak: int = 0
    best_streak: int = 0
    lives: int = 0
    total_trials: int = 0
    correct_trials: int = 0
    reaction_times_ms: list[int] = field(default_factory=list)

    def reset(self, *, lives: int = 0) -> None:
        self.score = 0
        self.streak = 0
        self.best_streak = 0
        self.lives = int(lives)
        self.total_trials = 0
        self.correct_trials = 0
        self.reaction_times_ms = []

    def apply(self, verdict: Verdict) -> int:
        """Apply a verdict and return the score change actually applied."""

        before = self.score
        self.score = max(0, self.score + int(verdict.score_delta))

        if verdict.tallied:
            self.total_trials += 1
            if verdict.is_correct:
                self.correct_trials += 1

        if verdict.streak:
            if verdict.is_correct:
                self.streak += 1
                self.best_streak = max(self.best_streak, self.streak)
            else:
                self.streak = 0

        if verdict.reaction_ms is not None:
            self.reaction_times_ms.append(int(verdict.reaction_ms))

        self.lives = max(0, self.lives + int(verdict.lives_delta))
        return self.score - before


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """View model for the UI (pure data)."""

    title: str
    state: str
    prompt: str
    time_remaining_s: float | None
    score: int
    streak: int
    lives: int
    trial_id: int | None = None
    level: int | None = None
    level_name: str | None = None
    round: int | None = None
    progress: tuple[int, int] | None = None
    payload: object | None = None
    feedback: Feedback | None = None
    summary: object | None = None


class SeededRng:
    """Seeded RNG wrapper; ``seed=None`` draws from OS entropy."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(None if seed is None else int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def coin(self) -> bool:
        return self._rng.random() < 0.5


@dataclass(slots=True)
class _ActiveTrial:
    trial_id: int
    stimulus: Any
    judge: Judge
    presented_at_s: float
    responded: bool = False


class TimedTrialEngine:
    """Shared timed-trial harness: present -> (response | timeout) -> verdict.

    Subclasses decide what to present and what happens after each outcome by
    overriding :meth:`_after_outcome`. Responses and timeouts for one trial
    are mutually exclusive: the trial clock is disarmed on response, the
    ``responded`` flag is checked by both paths, and pending timers are
    polled before every response so an already-expired deadline wins.
    """

    def __init__(self, *, title: str, clock: Clock) -> None:
        self._title = title
        self._clock = clock
        self._scheduler = DeferredScheduler(clock)
        self._trial_clock = TrialClock(self._scheduler, clock)
        self._stats = RunningStats()
        self._active: _ActiveTrial | None = None
        self._next_trial_id = 1
        self._feedback: Feedback | None = None

    @property
    def title(self) -> str:
        return self._title

    @property
    def stats(self) -> RunningStats:
        return self._stats

    @property
    def feedback(self) -> Feedback | None:
        return self._feedback

    @property
    def active_trial_id(self) -> int | None:
        return None if self._active is None else self._active.trial_id

    def update(self) -> None:
        """Elapsed-time tick: runs due timeouts and deferred phase changes."""

        self._scheduler.poll()

    def time_remaining_s(self) -> float | None:
        return self._trial_clock.display_time_left_s()

    def respond(self, trial_id: int, raw: str) -> bool:
        """Deliver a response. Returns False when it is ignored."""

        self.update()
        trial = self._active
        if trial is None or trial.trial_id != trial_id or trial.responded:
            return False
        if not trial.judge.accepts(raw):
            return False

        rt_ms = int(round(max(0.0, self._clock.now() - trial.presented_at_s) * 1000.0))
        self._resolve(trial, raw, rt_ms)
        return True

    def navigate_away(self) -> None:
        """Cancel every pending timer and deferred action for the session."""

        self._cancel_pending()
        self._on_navigate_away()

    def _open_trial(self, stimulus: Any, judge: Judge, *, deadline_s: float | None) -> int:
        assert self._active is None or self._active.responded, "previous trial still open"
        trial_id = self._next_trial_id
        self._next_trial_id += 1
        self._active = _ActiveTrial(
            trial_id=trial_id,
            stimulus=stimulus,
            judge=judge,
            presented_at_s=self._clock.now(),
        )
        if deadline_s is None:
            self._trial_clock.disarm()
        else:
            self._trial_clock.arm(deadline_s, lambda: self._on_timeout(trial_id))
        return trial_id

    def _on_timeout(self, trial_id: int) -> None:
        trial = self._active
        if trial is None or trial.trial_id != trial_id or trial.responded:
            return
        self._resolve(trial, None, None)

    def _resolve(self, trial: _ActiveTrial, raw: str | None, rt_ms: int | None) -> None:
        trial.responded = True
        self._trial_clock.disarm()
        self._active = None

        verdict = trial.judge.judge(trial.stimulus, raw, rt_ms)
        applied = self._stats.apply(verdict)
        self._feedback = Feedback(outcome=verdict.outcome, text=verdict.text, score_delta=applied)
        logger.debug(
            "%s trial %d: %s (%+d, rt=%s)",
            self._title,
            trial.trial_id,
            verdict.outcome.value,
            applied,
            rt_ms,
        )
        self._after_outcome(trial.stimulus, verdict)

    def _defer(self, delay_s: float, action) -> int:
        return self._scheduler.schedule(delay_s, action)

    def _cancel_pending(self) -> None:
        self._trial_clock.disarm()
        self._scheduler.cancel_all()
        if self._active is not None:
            self._active.responded = True
        self._active = None

    def _after_outcome(self, stimulus: Any, verdict: Verdict) -> None:
        raise NotImplementedError

    def _on_navigate_away(self) -> None:
        pass
