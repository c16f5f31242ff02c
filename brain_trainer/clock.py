from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


# UI-facing countdowns move in 100 ms steps; firing uses the exact deadline.
DISPLAY_TICK_S = 0.1


@dataclass(slots=True)
class _Deferred:
    handle: int
    due_s: float
    generation: int
    action: Callable[[], None]
    cancelled: bool = False


class DeferredScheduler:
    """Cancellable deferred actions driven by ``poll()``.

    Nothing runs on its own: the owner calls :meth:`poll` (once per frame, and
    before handling any input) and every task whose due time has passed runs
    in due order. :meth:`cancel_all` bumps the generation counter, so a task
    captured by an in-flight poll that belongs to an older generation is a
    silent no-op.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._tasks: list[_Deferred] = []
        self._batch: list[_Deferred] = []
        self._next_handle = 1
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.cancelled)

    def schedule(self, delay_s: float, action: Callable[[], None]) -> int:
        if delay_s < 0.0:
            raise ValueError("delay_s must be >= 0")
        return self.schedule_at(self._clock.now() + float(delay_s), action)

    def schedule_at(self, due_s: float, action: Callable[[], None]) -> int:
        """Schedule at an absolute clock time; a past time runs on the next poll."""

        handle = self._next_handle
        self._next_handle += 1
        self._tasks.append(
            _Deferred(
                handle=handle,
                due_s=float(due_s),
                generation=self._generation,
                action=action,
            )
        )
        return handle

    def cancel(self, handle: int) -> bool:
        for task in (*self._tasks, *self._batch):
            if task.handle == handle and not task.cancelled:
                task.cancelled = True
                return True
        return False

    def cancel_all(self) -> None:
        for task in (*self._tasks, *self._batch):
            task.cancelled = True
        self._tasks.clear()
        self._generation += 1

    def poll(self) -> int:
        """Run every due task. Returns how many actions actually ran."""

        now = self._clock.now()
        due = [t for t in self._tasks if t.due_s <= now]
        if not due:
            return 0
        self._tasks = [t for t in self._tasks if t.due_s > now]
        due.sort(key=lambda t: (t.due_s, t.handle))

        self._batch = due
        ran = 0
        try:
            for task in due:
                # Earlier actions in this batch may have cancelled later ones.
                if task.cancelled or task.generation != self._generation:
                    continue
                task.cancelled = True
                task.action()
                ran += 1
        finally:
            self._batch = []
        return ran


class TrialClock:
    """Cancellable per-trial countdown.

    At most one countdown is armed. ``on_timeout`` fires at most once, from
    :meth:`DeferredScheduler.poll`, and never after :meth:`disarm`.
    """

    def __init__(self, scheduler: DeferredScheduler, clock: Clock) -> None:
        self._scheduler = scheduler
        self._clock = clock
        self._handle: int | None = None
        self._deadline_at_s: float | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, deadline_s: float, on_timeout: Callable[[], None]) -> None:
        if deadline_s <= 0.0:
            raise ValueError("deadline_s must be > 0")
        self.disarm()

        def fire() -> None:
            self._handle = None
            self._deadline_at_s = None
            on_timeout()

        deadline_at_s = self._clock.now() + float(deadline_s)
        self._deadline_at_s = deadline_at_s
        self._handle = self._scheduler.schedule_at(deadline_at_s, fire)

    def disarm(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
        self._handle = None
        self._deadline_at_s = None

    def time_left_s(self) -> float | None:
        if self._deadline_at_s is None:
            return None
        return max(0.0, self._deadline_at_s - self._clock.now())

    def display_time_left_s(self) -> float | None:
        left = self.time_left_s()
        if left is None:
            return None
        return display_ticks(left)


def display_ticks(seconds: float) -> float:
    """Quantise a remaining time down to whole display ticks."""

    ticks = math.floor(seconds / DISPLAY_TICK_S + 1e-6)
    return round(max(0, ticks) * DISPLAY_TICK_S, 1)
