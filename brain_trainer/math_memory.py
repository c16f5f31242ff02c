"""Math + Memory: a dual-task working-memory game.

Each round shows ``sequence_length`` memory items one at a time. A timed
arithmetic problem sits between consecutive items (not after the last one),
then the player recalls the whole sequence in order. Five correct recalls
clear a level; a failed recall costs one of three lives and repeats the
round.

Phase changes are deferred actions on the engine's scheduler, so the whole
game is driven by ``update()`` polls and the two response entry points,
``submit_math`` and ``submit_recall``. Time comes only from the injected
``Clock``.
"""

from __future__ import annotations

import logging
import re
import string
from dataclasses import dataclass
from enum import Enum

from .clock import Clock, display_ticks
from .cognitive_core import GameSnapshot, Outcome, SeededRng, TimedTrialEngine, Verdict
from .levels import MAX_LEVEL, MIN_LEVEL, ItemType, LevelConfig, MathType, level_config
from .progression import Advance, LevelProgression
from .results import SessionSummary, summarize, summary_lines

logger = logging.getLogger(__name__)

STARTING_LIVES = 3
ROUNDS_PER_LEVEL = 5

MEMORY_GAP_S = 0.5
POST_ANSWER_DELAY_S = 0.5
POST_TIMEOUT_DELAY_S = 1.0
RECALL_FEEDBACK_S = 2.0

MATH_CORRECT_POINTS = 10
MATH_PENALTY = 5
RECALL_POINTS = 50

LETTERS: tuple[str, ...] = tuple(string.ascii_uppercase)
WORDS: tuple[str, ...] = (
    "CAT",
    "DOG",
    "SUN",
    "MOON",
    "TREE",
    "BOOK",
    "DOOR",
    "FISH",
    "BIRD",
    "STAR",
    "DESK",
    "LAMP",
)

ADD = "+"
SUB = "-"
MUL = "×"
DIV = "÷"
OPERATORS: tuple[str, ...] = (ADD, SUB, MUL, DIV)

_RECALL_SPLIT = re.compile(r"[\s,]+")
_INT_ANSWER = re.compile(r"-?[0-9]+")


@dataclass(frozen=True, slots=True)
class MathProblem:
    operand_a: int
    operand_b: int
    operator: str
    answer: int

    @property
    def prompt(self) -> str:
        return f"{self.operand_a} {self.operator} {self.operand_b} = ?"


class MathMemoryState(str, Enum):
    MENU = "menu"
    PLAYING = "playing"
    RECALL = "recall"
    FEEDBACK = "feedback"
    GAME_OVER = "gameOver"


class PlayingStage(str, Enum):
    MEMORIZE = "memorize"
    GAP = "gap"
    MATH = "math"
    MATH_FEEDBACK = "math_feedback"


@dataclass(frozen=True, slots=True)
class MathMemoryPayload:
    stage: PlayingStage | None
    memory_item: str | None
    problem: MathProblem | None
    items_shown: int
    sequence_length: int
    accepting_input: bool
    revealed_sequence: tuple[str, ...] | None = None
    recall_correct: bool | None = None
    item_type: ItemType | None = None


class MathMemoryGenerator:
    def __init__(self, rng: SeededRng) -> None:
        self._rng = rng

    def memory_item(self, config: LevelConfig) -> str:
        if config.item_type is ItemType.LETTERS:
            return self._rng.choice(LETTERS)
        if config.item_type is ItemType.WORDS:
            return self._rng.choice(WORDS)
        return self._rng.choice(LETTERS) if self._rng.coin() else self._rng.choice(WORDS)

    def math_problem(self, config: LevelConfig) -> MathProblem:
        lo, hi = config.math_range

        if config.math_type is MathType.ADDITION:
            return self._add_or_sub(ADD, lo, hi)

        if config.math_type is MathType.MIXED_BASIC:
            return self._add_or_sub(ADD if self._rng.coin() else SUB, lo, hi)

        if config.math_type is MathType.MULTIPLICATION:
            a = self._rng.randint(lo, hi)
            b = self._rng.randint(2, 11)
            return MathProblem(a, b, MUL, a * b)

        op = self._rng.choice(OPERATORS)
        if op == DIV:
            # Dividend is derived, so it may fall outside the level's range.
            b = self._rng.randint(2, 11)
            quotient = self._rng.randint(1, 20)
            return MathProblem(b * quotient, b, DIV, quotient)
        if op == MUL:
            a = self._rng.randint(2, 16)
            b = self._rng.randint(2, 11)
            return MathProblem(a, b, MUL, a * b)
        return self._add_or_sub(op, lo, hi)

    def _add_or_sub(self, op: str, lo: int, hi: int) -> MathProblem:
        a = self._rng.randint(lo, hi)
        b = self._rng.randint(lo, hi)
        if op == SUB:
            if a < b:
                a, b = b, a
            return MathProblem(a, b, SUB, a - b)
        return MathProblem(a, b, ADD, a + b)


def parse_recall(raw: str) -> list[str]:
    return [tok for tok in _RECALL_SPLIT.split(str(raw).upper()) if tok]


def recall_matches(sequence: tuple[str, ...] | list[str], raw: str) -> bool:
    expected = [item.upper() for item in sequence]
    return parse_recall(raw) == expected


class ArithmeticJudge:
    def accepts(self, raw: str) -> bool:
        return str(raw).strip() != ""

    def judge(self, stimulus: MathProblem, raw: str | None, reaction_ms: int | None) -> Verdict:
        if raw is None:
            return Verdict(
                outcome=Outcome.TIMEOUT,
                score_delta=-MATH_PENALTY,
                text=f"✗ Time's up! {stimulus.prompt[:-1]}{stimulus.answer}",
                streak=False,
            )
        typed = raw.strip()
        correct = _INT_ANSWER.fullmatch(typed) is not None and int(typed) == stimulus.answer
        if correct:
            return Verdict(
                outcome=Outcome.CORRECT,
                score_delta=MATH_CORRECT_POINTS,
                text="✓ Correct!",
                reaction_ms=reaction_ms,
                streak=False,
            )
        return Verdict(
            outcome=Outcome.INCORRECT,
            score_delta=-MATH_PENALTY,
            text=f"✗ {stimulus.prompt[:-1]}{stimulus.answer}",
            streak=False,
        )


class RecallJudge:
    def accepts(self, raw: str) -> bool:
        return True

    def judge(self, stimulus: tuple[str, ...], raw: str | None, reaction_ms: int | None) -> Verdict:
        if raw is not None and recall_matches(stimulus, raw):
            return Verdict(outcome=Outcome.CORRECT, score_delta=RECALL_POINTS, text="Correct!", tallied=False)
        return Verdict(
            outcome=Outcome.INCORRECT if raw is not None else Outcome.TIMEOUT,
            score_delta=0,
            text="Incorrect",
            tallied=False,
            lives_delta=-1,
        )


class MathMemoryGame(TimedTrialEngine):
    """Nested memorize/compute/recall rounds with level gating.

    ``stats.total_trials``/``correct_trials`` and reaction times cover the
    arithmetic problems; the streak counts consecutive correct recalls.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int | None = None,
        lives: int = STARTING_LIVES,
        rounds_per_level: int = ROUNDS_PER_LEVEL,
    ) -> None:
        if lives < 1:
            raise ValueError("lives must be >= 1")
        if rounds_per_level < 1:
            raise ValueError("rounds_per_level must be >= 1")
        super().__init__(title="Math + Memory", clock=clock)

        self._gen = MathMemoryGenerator(SeededRng(seed))
        self._arith_judge = ArithmeticJudge()
        self._recall_judge = RecallJudge()
        self._starting_lives = int(lives)
        self._rounds_per_level = int(rounds_per_level)

        self._state = MathMemoryState.MENU
        self._stage: PlayingStage | None = None
        self._progression = LevelProgression(self._stats, rounds_per_level=self._rounds_per_level)
        self._sequence: list[str] = []
        self._current_item: str | None = None
        self._current_problem: MathProblem | None = None
        self._memorize_ends_at_s: float | None = None
        self._last_recall_correct: bool | None = None
        self._summary: SessionSummary | None = None

    @property
    def state(self) -> MathMemoryState:
        return self._state

    @property
    def stage(self) -> PlayingStage | None:
        return self._stage

    @property
    def level(self) -> int:
        return self._progression.level

    @property
    def round(self) -> int:
        return self._progression.round

    @property
    def config(self) -> LevelConfig:
        return level_config(self._progression.level)

    @property
    def sequence(self) -> tuple[str, ...]:
        return tuple(self._sequence)

    @property
    def current_item(self) -> str | None:
        return self._current_item

    @property
    def current_problem(self) -> MathProblem | None:
        return self._current_problem

    @property
    def summary(self) -> SessionSummary | None:
        return self._summary

    def start(self, level: int = MIN_LEVEL) -> None:
        level_config(level)
        if self._state is not MathMemoryState.MENU:
            return
        self._cancel_pending()
        self._stats.reset(lives=self._starting_lives)
        self._progression = LevelProgression(
            self._stats,
            start_level=level,
            rounds_per_level=self._rounds_per_level,
        )
        self._feedback = None
        self._summary = None
        logger.info("Math + Memory started at level %d", level)
        self._start_round()

    def reset(self) -> None:
        """Back to the level-select menu, dropping any game in progress."""

        self.navigate_away()

    def submit_math(self, trial_id: int, raw: str) -> bool:
        if self._state is not MathMemoryState.PLAYING or self._stage is not PlayingStage.MATH:
            self.update()
            return False
        return self.respond(trial_id, raw)

    def submit_recall(self, trial_id: int, raw: str) -> bool:
        if self._state is not MathMemoryState.RECALL:
            self.update()
            return False
        return self.respond(trial_id, raw)

    def time_remaining_s(self) -> float | None:
        if self._stage is PlayingStage.MEMORIZE and self._memorize_ends_at_s is not None:
            return display_ticks(max(0.0, self._memorize_ends_at_s - self._clock.now()))
        return super().time_remaining_s()

    def snapshot(self) -> GameSnapshot:
        in_game = self._state is not MathMemoryState.MENU
        return GameSnapshot(
            title=self._title,
            state=self._state.value,
            prompt=self._prompt_text(),
            time_remaining_s=self.time_remaining_s(),
            score=self._stats.score,
            streak=self._stats.streak,
            lives=self._stats.lives,
            trial_id=self.active_trial_id,
            level=self.level if in_game else None,
            level_name=self.config.name if in_game else None,
            round=self.round if in_game else None,
            progress=(len(self._sequence), self.config.sequence_length) if in_game else None,
            payload=self._payload(),
            feedback=self._feedback,
            summary=self._summary,
        )

    def _payload(self) -> MathMemoryPayload | None:
        if self._state in (MathMemoryState.MENU, MathMemoryState.GAME_OVER):
            return None
        cfg = self.config
        revealed = None
        if self._state is MathMemoryState.FEEDBACK:
            revealed = tuple(self._sequence)
        return MathMemoryPayload(
            stage=self._stage if self._state is MathMemoryState.PLAYING else None,
            memory_item=self._current_item if self._stage is PlayingStage.MEMORIZE else None,
            problem=self._current_problem if self._stage is PlayingStage.MATH else None,
            items_shown=len(self._sequence),
            sequence_length=cfg.sequence_length,
            accepting_input=self._active is not None,
            revealed_sequence=revealed,
            recall_correct=self._last_recall_correct if revealed is not None else None,
            item_type=cfg.item_type,
        )

    def _prompt_text(self) -> str:
        if self._state is MathMemoryState.MENU:
            lines = [
                "How to Play",
                "",
                "1. Memorize letters/words shown one at a time",
                "2. Solve math problems between each memory item",
                "3. Recall all items in the exact order",
                f"4. Complete {self._rounds_per_level} rounds to advance levels!",
                "",
            ]
            for n in range(MIN_LEVEL, MAX_LEVEL + 1):
                cfg = level_config(n)
                lines.append(f"{n}: {cfg.name} ({cfg.label})")
            lines.append("")
            lines.append("Press a level number to start.")
            return "\n".join(lines)
        if self._state is MathMemoryState.GAME_OVER:
            assert self._summary is not None
            return "\n".join([*summary_lines(self._summary), "", "Press Enter to play again."])
        if self._state is MathMemoryState.RECALL:
            example = "A B C D" if self.config.item_type is ItemType.LETTERS else "CAT DOG SUN"
            return f"Enter the {self.config.sequence_length} items in order (e.g. {example})"
        if self._state is MathMemoryState.FEEDBACK:
            verdict = "Correct!" if self._last_recall_correct else "Incorrect"
            return f"{verdict}  The sequence was: {' -> '.join(self._sequence)}"
        if self._stage is PlayingStage.MEMORIZE:
            assert self._current_item is not None
            return self._current_item
        if self._stage is PlayingStage.MATH:
            assert self._current_problem is not None
            return self._current_problem.prompt
        if self._stage is PlayingStage.MATH_FEEDBACK and self._feedback is not None:
            return self._feedback.text
        return ""

    def _start_round(self) -> None:
        self._sequence = []
        self._current_problem = None
        self._last_recall_correct = None
        self._state = MathMemoryState.PLAYING
        logger.debug("Level %d round %d", self.level, self.round)
        self._show_next_item()

    def _show_next_item(self) -> None:
        cfg = self.config
        self._current_problem = None
        self._current_item = self._gen.memory_item(cfg)
        self._stage = PlayingStage.MEMORIZE
        self._memorize_ends_at_s = self._clock.now() + cfg.memory_time_s
        self._defer(cfg.memory_time_s, self._commit_item)

    def _commit_item(self) -> None:
        assert self._current_item is not None
        self._sequence.append(self._current_item)
        self._current_item = None
        self._memorize_ends_at_s = None
        self._stage = PlayingStage.GAP
        if len(self._sequence) < self.config.sequence_length:
            self._defer(MEMORY_GAP_S, self._show_problem)
        else:
            self._defer(MEMORY_GAP_S, self._start_recall)

    def _show_problem(self) -> None:
        cfg = self.config
        self._current_problem = self._gen.math_problem(cfg)
        self._stage = PlayingStage.MATH
        self._open_trial(self._current_problem, self._arith_judge, deadline_s=cfg.math_time_s)

    def _start_recall(self) -> None:
        self._stage = None
        self._current_problem = None
        self._state = MathMemoryState.RECALL
        self._open_trial(tuple(self._sequence), self._recall_judge, deadline_s=None)

    def _after_outcome(self, stimulus, verdict: Verdict) -> None:
        if isinstance(stimulus, MathProblem):
            self._stage = PlayingStage.MATH_FEEDBACK
            delay = POST_TIMEOUT_DELAY_S if verdict.outcome is Outcome.TIMEOUT else POST_ANSWER_DELAY_S
            self._defer(delay, self._show_next_item)
            return

        self._last_recall_correct = verdict.is_correct
        advance = self._progression.decide(verdict.is_correct)
        self._state = MathMemoryState.FEEDBACK
        logger.debug("Recall %s -> %s (lives=%d)", verdict.outcome.value, advance.value, self._stats.lives)
        self._defer(RECALL_FEEDBACK_S, lambda: self._apply_advance(advance))

    def _apply_advance(self, advance: Advance) -> None:
        self._progression.apply(advance)
        if self._progression.finished:
            self._finish()
            return
        if advance is Advance.NEXT_LEVEL:
            logger.info("Level up: %d (%s)", self.level, self.config.name)
        self._start_round()

    def _finish(self) -> None:
        self._cancel_pending()
        self._state = MathMemoryState.GAME_OVER
        self._stage = None
        self._sequence = []
        self._current_item = None
        self._current_problem = None
        self._summary = summarize(
            self._stats,
            game=self._title,
            level=self.level,
            level_name=self.config.name,
            round_reached=self.round,
            won=self._progression.won,
        )
        logger.info(
            "Math + Memory over: score=%d level=%d round=%d won=%s",
            self._summary.final_score,
            self.level,
            self.round,
            self._summary.won,
        )

    def _on_navigate_away(self) -> None:
        self._state = MathMemoryState.MENU
        self._stage = None
        self._sequence = []
        self._current_item = None
        self._current_problem = None
        self._memorize_ends_at_s = None
        self._last_recall_correct = None
        self._feedback = None


def build_math_memory_game(*, clock: Clock, seed: int | None = None) -> MathMemoryGame:
    return MathMemoryGame(
        clock=clock,
        seed=seed,
        lives=STARTING_LIVES,
        rounds_per_level=ROUNDS_PER_LEVEL,
    )
