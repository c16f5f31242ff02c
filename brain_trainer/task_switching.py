from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .clock import Clock
from .cognitive_core import GameSnapshot, Outcome, SeededRng, TimedTrialEngine, Verdict
from .progression import TrialQuota
from .results import SessionSummary, summarize, summary_lines

logger = logging.getLogger(__name__)

TRIALS_PER_GAME = 30
TRIAL_DEADLINE_S = 2.5
FEEDBACK_PAUSE_S = 0.3

# K1 answers "even" (top box) or "round" (bottom box); K2 "odd" / "angular".
KEY_EVEN_OR_ROUND = "q"
KEY_ODD_OR_ANGULAR = "p"

WRONG_PENALTY = 5
TIMEOUT_PENALTY = 10


class BoxSide(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True, slots=True)
class Shape:
    name: str
    is_round: bool


SHAPES: tuple[Shape, ...] = (
    Shape("circle", True),
    Shape("square", False),
    Shape("triangle", False),
    Shape("hexagon", False),
    Shape("heart", True),
    Shape("star", False),
    Shape("octagon", True),
)


@dataclass(frozen=True, slots=True)
class TaskSwitchingTrial:
    box: BoxSide
    digit: int
    shape: Shape


class TaskSwitchingState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    ENDED = "ended"


@dataclass(frozen=True, slots=True)
class TaskSwitchingPayload:
    box: BoxSide
    digit: int
    shape_name: str
    shape_is_round: bool
    accepting_input: bool


class TaskSwitchingGenerator:
    def __init__(self, rng: SeededRng) -> None:
        self._rng = rng

    def next_trial(self) -> TaskSwitchingTrial:
        box = BoxSide.TOP if self._rng.coin() else BoxSide.BOTTOM
        digit = self._rng.randint(1, 9)
        shape = self._rng.choice(SHAPES)
        return TaskSwitchingTrial(box=box, digit=digit, shape=shape)


def expected_key(trial: TaskSwitchingTrial) -> str:
    if trial.box is BoxSide.TOP:
        return KEY_EVEN_OR_ROUND if trial.digit % 2 == 0 else KEY_ODD_OR_ANGULAR
    return KEY_EVEN_OR_ROUND if trial.shape.is_round else KEY_ODD_OR_ANGULAR


def correct_points(reaction_ms: int) -> int:
    return max(10, 100 - int(reaction_ms) // 20)


class TaskSwitchingJudge:
    def accepts(self, raw: str) -> bool:
        return str(raw).strip().lower() in (KEY_EVEN_OR_ROUND, KEY_ODD_OR_ANGULAR)

    def judge(self, stimulus: TaskSwitchingTrial, raw: str | None, reaction_ms: int | None) -> Verdict:
        if raw is None:
            return Verdict(outcome=Outcome.TIMEOUT, score_delta=-TIMEOUT_PENALTY, text="✗ Too slow!")

        assert reaction_ms is not None
        if raw.strip().lower() == expected_key(stimulus):
            return Verdict(
                outcome=Outcome.CORRECT,
                score_delta=correct_points(reaction_ms),
                text="✓ Correct!",
                reaction_ms=reaction_ms,
            )
        return Verdict(outcome=Outcome.INCORRECT, score_delta=-WRONG_PENALTY, text="✗ Wrong!")


class TaskSwitchingGame(TimedTrialEngine):
    """Flat run of timed parity/roundness trials.

    ``start()`` deals the first trial; every outcome is followed by a short
    feedback pause and then the next trial, until the quota is used up.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int | None = None,
        trials: int = TRIALS_PER_GAME,
        deadline_s: float = TRIAL_DEADLINE_S,
        feedback_pause_s: float = FEEDBACK_PAUSE_S,
    ) -> None:
        if deadline_s <= 0.0:
            raise ValueError("deadline_s must be > 0")
        if feedback_pause_s < 0.0:
            raise ValueError("feedback_pause_s must be >= 0")
        super().__init__(title="Task Switching", clock=clock)

        self._gen = TaskSwitchingGenerator(SeededRng(seed))
        self._judge = TaskSwitchingJudge()
        self._quota = TrialQuota(trials)
        self._deadline_s = float(deadline_s)
        self._feedback_pause_s = float(feedback_pause_s)

        self._state = TaskSwitchingState.IDLE
        self._current: TaskSwitchingTrial | None = None
        self._summary: SessionSummary | None = None

    @property
    def state(self) -> TaskSwitchingState:
        return self._state

    @property
    def current_trial(self) -> TaskSwitchingTrial | None:
        return self._current

    @property
    def summary(self) -> SessionSummary | None:
        return self._summary

    def start(self) -> None:
        if self._state is TaskSwitchingState.RUNNING:
            return
        self._cancel_pending()
        self._stats.reset()
        self._quota.reset()
        self._feedback = None
        self._summary = None
        self._state = TaskSwitchingState.RUNNING
        logger.info("Task switching started (%d trials)", self._quota.total)
        self._deal_new_trial()

    def end(self) -> None:
        """End the run early; the summary covers the trials resolved so far."""

        if self._state is not TaskSwitchingState.RUNNING:
            return
        self._finish()

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            title=self._title,
            state=self._state.value,
            prompt=self._prompt_text(),
            time_remaining_s=self.time_remaining_s(),
            score=self._stats.score,
            streak=self._stats.streak,
            lives=self._stats.lives,
            trial_id=self.active_trial_id,
            progress=(self._quota.done, self._quota.total),
            payload=self._payload(),
            feedback=self._feedback,
            summary=self._summary,
        )

    def _payload(self) -> TaskSwitchingPayload | None:
        if self._state is not TaskSwitchingState.RUNNING or self._current is None:
            return None
        t = self._current
        return TaskSwitchingPayload(
            box=t.box,
            digit=t.digit,
            shape_name=t.shape.name,
            shape_is_round=t.shape.is_round,
            accepting_input=self._active is not None,
        )

    def _prompt_text(self) -> str:
        if self._state is TaskSwitchingState.IDLE:
            return "\n".join(
                [
                    "How to Play",
                    "",
                    f"Top box: press {KEY_EVEN_OR_ROUND.upper()} for even numbers, "
                    f"{KEY_ODD_OR_ANGULAR.upper()} for odd numbers.",
                    f"Bottom box: press {KEY_EVEN_OR_ROUND.upper()} for round shapes, "
                    f"{KEY_ODD_OR_ANGULAR.upper()} for angular shapes.",
                    f"Complete {self._quota.total} trials. You have {self._deadline_s:g} seconds per trial!",
                    "",
                    "Press Enter to start.",
                ]
            )
        if self._state is TaskSwitchingState.ENDED:
            assert self._summary is not None
            return "\n".join([*summary_lines(self._summary), "", "Press Enter to play again."])
        if self._active is None and self._feedback is not None:
            return self._feedback.text
        return f"Press {KEY_EVEN_OR_ROUND.upper()} or {KEY_ODD_OR_ANGULAR.upper()} ({self._deadline_s:g}s limit)"

    def _deal_new_trial(self) -> None:
        self._current = self._gen.next_trial()
        self._feedback = None
        self._open_trial(self._current, self._judge, deadline_s=self._deadline_s)

    def _after_outcome(self, stimulus: TaskSwitchingTrial, verdict: Verdict) -> None:
        if self._quota.record():
            self._finish()
            return
        self._defer(self._feedback_pause_s, self._deal_new_trial)

    def _finish(self) -> None:
        self._cancel_pending()
        self._state = TaskSwitchingState.ENDED
        self._summary = summarize(self._stats, game=self._title)
        logger.info(
            "Task switching ended: score=%d accuracy=%.1f%% trials=%d",
            self._summary.final_score,
            self._summary.accuracy * 100.0,
            self._summary.total_trials,
        )

    def _on_navigate_away(self) -> None:
        self._state = TaskSwitchingState.IDLE
        self._current = None
        self._feedback = None


def build_task_switching_game(
    *,
    clock: Clock,
    seed: int | None = None,
    trials: int = TRIALS_PER_GAME,
) -> TaskSwitchingGame:
    return TaskSwitchingGame(
        clock=clock,
        seed=seed,
        trials=trials,
        deadline_s=TRIAL_DEADLINE_S,
        feedback_pause_s=FEEDBACK_PAUSE_S,
    )
