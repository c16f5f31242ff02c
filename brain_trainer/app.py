"""Pygame UI shell for the Brain Trainer mini-games.

- Task Switching (parity / roundness rule switching, 30 timed trials)
- Math + Memory (memorize items between timed sums, recall in order)

Deterministic timing/scoring/RNG/state lives in brain_trainer/* (core modules);
screens only forward input and draw ``GameSnapshot`` objects.
"""

from __future__ import annotations

import logging
import math
import os
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import RealClock
from .cognitive_core import GameSnapshot, Outcome
from .levels import MAX_LEVEL, MIN_LEVEL
from .math_memory import (
    ROUNDS_PER_LEVEL,
    MathMemoryGame,
    MathMemoryPayload,
    MathMemoryState,
    PlayingStage,
    build_math_memory_game,
)
from .task_switching import (
    BoxSide,
    TaskSwitchingGame,
    TaskSwitchingPayload,
    TaskSwitchingState,
    build_task_switching_game,
)

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "BRAIN_TRAINER_LOG_LEVEL"
SEED_ENV = "BRAIN_TRAINER_SEED"

LEVEL_KEYS = {str(n): n for n in range(MIN_LEVEL, MAX_LEVEL + 1)}
DIGIT_KEYS = frozenset("0123456789")

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

BG = (3, 9, 78)
PANEL_BG = (8, 18, 104)
HEADER_BG = (18, 30, 118)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (186, 200, 224)
GOOD = (84, 214, 136)
BAD = (236, 96, 96)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            screen = self._screens.pop()
            close = getattr(screen, "close", None)
            if close is not None:
                close()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


def _draw_frame(surface: pygame.Surface, title: str, tag: str, title_font, hint_font) -> pygame.Rect:
    w, h = surface.get_size()
    surface.fill(BG)

    margin = max(10, min(26, w // 34))
    frame = pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))
    pygame.draw.rect(surface, PANEL_BG, frame)
    pygame.draw.rect(surface, BORDER, frame, 2)

    header_h = max(34, min(52, h // 8))
    header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
    pygame.draw.rect(surface, HEADER_BG, header)
    pygame.draw.line(surface, BORDER, (header.x, header.bottom), (header.right, header.bottom), 1)

    tag_surf = hint_font.render(tag, True, TEXT_MUTED)
    surface.blit(tag_surf, (header.x + 12, header.y + (header.h - tag_surf.get_height()) // 2))
    title_surf = title_font.render(title, True, TEXT_MAIN)
    surface.blit(title_surf, title_surf.get_rect(center=(frame.centerx, header.centery)))

    return pygame.Rect(frame.x + 16, header.bottom + 12, frame.w - 32, frame.bottom - header.bottom - 24)


def _blit_lines(surface: pygame.Surface, font: pygame.font.Font, lines: list[str], x: int, y: int) -> int:
    for line in lines:
        surface.blit(font.render(line, True, TEXT_MAIN), (x, y))
        y += font.get_linesize()
    return y


def _polygon_points(cx: int, cy: int, radius: int, count: int, angle_shift: float = 0.0) -> list[tuple[int, int]]:
    points = []
    for i in range(count):
        angle = angle_shift + (2 * math.pi * i / count)
        points.append((int(cx + radius * math.cos(angle)), int(cy + radius * math.sin(angle))))
    return points


def _draw_shape(surface: pygame.Surface, name: str, color, center: tuple[int, int], size: int) -> None:
    cx, cy = center
    if name == "circle":
        pygame.draw.circle(surface, color, center, size)
    elif name == "square":
        rect = pygame.Rect(0, 0, size * 2, size * 2)
        rect.center = center
        pygame.draw.rect(surface, color, rect)
    elif name == "triangle":
        pygame.draw.polygon(surface, color, [(cx, cy - size), (cx - size, cy + size), (cx + size, cy + size)])
    elif name == "hexagon":
        pygame.draw.polygon(surface, color, _polygon_points(cx, cy, size, 6))
    elif name == "octagon":
        pygame.draw.polygon(surface, color, _polygon_points(cx, cy, size, 8, math.pi / 8))
    elif name == "star":
        outer = _polygon_points(cx, cy, size, 5, -math.pi / 2)
        inner = _polygon_points(cx, cy, max(8, size // 2), 5, -math.pi / 2 + math.pi / 5)
        pygame.draw.polygon(surface, color, [p for pair in zip(outer, inner) for p in pair])
    elif name == "heart":
        r = size // 2
        pygame.draw.circle(surface, color, (cx - r, cy - r // 2), r)
        pygame.draw.circle(surface, color, (cx + r, cy - r // 2), r)
        pygame.draw.polygon(surface, color, [(cx - size, cy - r // 3), (cx + size, cy - r // 3), (cx, cy + size)])
    else:
        pygame.draw.circle(surface, color, center, size)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        content = _draw_frame(surface, self._title, "MENU", self._title_font, self._hint_font)
        row_h = 44
        y = content.y + max(8, (content.h - row_h * len(self._items)) // 2)
        for idx, item in enumerate(self._items):
            row = pygame.Rect(content.x + 12, y, content.w - 24, row_h - 8)
            selected = idx == self._selected
            pygame.draw.rect(surface, (244, 248, 255) if selected else (9, 20, 106), row)
            color = (14, 26, 74) if selected else TEXT_MAIN
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h

        foot = self._hint_font.render("Enter/Space: Select  |  Esc/Backspace: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(content.centerx, content.bottom)))


class _GameScreen:
    """Shared plumbing: poll the engine each frame, cancel it on exit."""

    def __init__(self, app: App) -> None:
        self._app = app
        self._title_font = pygame.font.Font(None, 42)
        self._big_font = pygame.font.Font(None, 96)
        self._small_font = pygame.font.Font(None, 28)
        self._hint_font = pygame.font.Font(None, 22)

    def close(self) -> None:
        self._engine.navigate_away()

    def _render_hud(self, surface: pygame.Surface, snap: GameSnapshot, content: pygame.Rect) -> None:
        parts = [f"Score {snap.score}", f"Streak {snap.streak}"]
        if snap.level is not None:
            parts.append(f"Level {snap.level} {snap.level_name}")
        if snap.round is not None:
            parts.append(f"Round {snap.round}/{ROUNDS_PER_LEVEL}")
        if snap.lives:
            parts.append("Lives " + "*" * snap.lives)
        if snap.time_remaining_s is not None:
            parts.append(f"{snap.time_remaining_s:.1f}s")
        hud = self._small_font.render("   ".join(parts), True, TEXT_MUTED)
        surface.blit(hud, (content.x, content.y))

    def _render_feedback(self, surface: pygame.Surface, snap: GameSnapshot, content: pygame.Rect) -> None:
        if snap.feedback is None:
            return
        color = GOOD if snap.feedback.outcome is Outcome.CORRECT else BAD
        text = self._small_font.render(snap.feedback.text, True, color)
        surface.blit(text, text.get_rect(midbottom=(content.centerx, content.bottom - 24)))


class TaskSwitchingScreen(_GameScreen):
    def __init__(self, app: App, *, engine_factory: Callable[[], TaskSwitchingGame]) -> None:
        super().__init__(app)
        self._engine = engine_factory()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        snap = self._engine.snapshot()
        if event.key == pygame.K_ESCAPE:
            self._app.pop()
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if snap.state != TaskSwitchingState.RUNNING.value:
                self._engine.start()
            return
        if event.key == pygame.K_e and snap.state == TaskSwitchingState.RUNNING.value:
            self._engine.end()
            return
        ch = getattr(event, "unicode", "")
        if ch and snap.trial_id is not None:
            self._engine.respond(snap.trial_id, ch)

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        snap = self._engine.snapshot()
        content = _draw_frame(surface, snap.title, snap.state.upper(), self._title_font, self._hint_font)

        payload = snap.payload if isinstance(snap.payload, TaskSwitchingPayload) else None
        if payload is None:
            _blit_lines(surface, self._small_font, snap.prompt.split("\n"), content.x, content.y + 8)
            return

        self._render_hud(surface, snap, content)
        if snap.progress is not None:
            done, total = snap.progress
            bar = pygame.Rect(content.x, content.y + 32, content.w, 6)
            pygame.draw.rect(surface, (40, 52, 130), bar)
            pygame.draw.rect(surface, GOOD, (bar.x, bar.y, int(bar.w * done / max(1, total)), bar.h))

        box_h = (content.h - 120) // 2
        for i, side in enumerate((BoxSide.TOP, BoxSide.BOTTOM)):
            box = pygame.Rect(content.x + 60, content.y + 52 + i * (box_h + 12), content.w - 120, box_h)
            active = payload.box is side
            pygame.draw.rect(surface, (60, 110, 230) if active else (50, 54, 80), box)
            label = "TOP (Even=Q, Odd=P)" if side is BoxSide.TOP else "BOTTOM (Round=Q, Angular=P)"
            surface.blit(self._hint_font.render(label, True, TEXT_MUTED), (box.x + 8, box.y + 6))
            if not active:
                continue
            size = max(18, box.h // 3)
            _draw_shape(surface, payload.shape_name, (200, 210, 255), box.center, size)
            digit = self._big_font.render(str(payload.digit), True, (20, 24, 70))
            surface.blit(digit, digit.get_rect(center=box.center))

        self._render_feedback(surface, snap, content)


class MathMemoryScreen(_GameScreen):
    def __init__(self, app: App, *, engine_factory: Callable[[], MathMemoryGame]) -> None:
        super().__init__(app)
        self._engine = engine_factory()
        self._input = ""
        self._input_trial_id: int | None = None

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        snap = self._engine.snapshot()
        state = MathMemoryState(snap.state)

        if event.key == pygame.K_ESCAPE:
            self._app.pop()
            return
        if state is MathMemoryState.MENU:
            ch = getattr(event, "unicode", "")
            if ch in LEVEL_KEYS:
                self._engine.start(LEVEL_KEYS[ch])
            return
        if state is MathMemoryState.GAME_OVER:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                self._engine.reset()
            return
        if snap.trial_id is None:
            return
        if snap.trial_id != self._input_trial_id:
            self._input = ""
            self._input_trial_id = snap.trial_id

        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if state is MathMemoryState.RECALL:
                accepted = self._engine.submit_recall(snap.trial_id, self._input)
            else:
                accepted = self._engine.submit_math(snap.trial_id, self._input)
            if accepted:
                self._input = ""
            return
        if event.key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
            return

        ch = getattr(event, "unicode", "")
        if state is MathMemoryState.RECALL:
            if ch and (ch.isalpha() or ch in " ,"):
                self._input += ch.upper()
        elif ch and (ch in DIGIT_KEYS or (ch == "-" and self._input == "")):
            self._input += ch

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        snap = self._engine.snapshot()
        content = _draw_frame(surface, snap.title, snap.state.upper(), self._title_font, self._hint_font)

        payload = snap.payload if isinstance(snap.payload, MathMemoryPayload) else None
        if payload is None:
            _blit_lines(surface, self._small_font, snap.prompt.split("\n"), content.x, content.y + 8)
            return

        self._render_hud(surface, snap, content)
        slots = " ".join("#" if i < payload.items_shown else "_" for i in range(payload.sequence_length))
        surface.blit(self._small_font.render(slots, True, TEXT_MUTED), (content.x, content.y + 30))

        color = TEXT_MAIN
        if payload.recall_correct is not None:
            color = GOOD if payload.recall_correct else BAD
        font = self._big_font if payload.stage is PlayingStage.MEMORIZE else self._title_font
        prompt = font.render(snap.prompt, True, color)
        surface.blit(prompt, prompt.get_rect(center=(content.centerx, content.centery - 20)))

        if payload.accepting_input:
            if snap.trial_id != self._input_trial_id:
                self._input = ""
                self._input_trial_id = snap.trial_id
            box = pygame.Rect(content.centerx - 180, content.centery + 40, 360, 44)
            pygame.draw.rect(surface, (6, 13, 92), box)
            pygame.draw.rect(surface, BORDER, box, 2)
            text = self._small_font.render(self._input, True, TEXT_MAIN)
            surface.blit(text, text.get_rect(midleft=(box.x + 10, box.centery)))
        elif payload.stage is PlayingStage.MATH_FEEDBACK:
            self._render_feedback(surface, snap, content)


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def _session_seed() -> int:
    raw = os.environ.get(SEED_ENV, "").strip()
    if raw:
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring non-integer %s=%r", SEED_ENV, raw)
    return _new_seed()


def _configure_logging() -> None:
    level_name = os.environ.get(LOG_LEVEL_ENV, "WARNING").strip().upper()
    level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    _configure_logging()
    pygame.init()

    pygame.display.set_caption("Brain Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    real_clock = RealClock()

    def open_task_switching() -> None:
        seed = _session_seed()
        app.push(
            TaskSwitchingScreen(
                app,
                engine_factory=lambda: build_task_switching_game(clock=real_clock, seed=seed),
            )
        )

    def open_math_memory() -> None:
        seed = _session_seed()
        app.push(
            MathMemoryScreen(
                app,
                engine_factory=lambda: build_math_memory_game(clock=real_clock, seed=seed),
            )
        )

    main_items = [
        MenuItem("Task Switching", open_task_switching),
        MenuItem("Math + Memory", open_math_memory),
        MenuItem("Quit", app.quit),
    ]

    app.push(MenuScreen(app, "Brain Trainer", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
