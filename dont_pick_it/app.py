"""Pygame UI shell for Don't Pick It!

A voice names a color; the player taps any button that is NOT that color.
All timing, scoring, generation and state live in the engine/session
modules; this file only draws snapshots and forwards input.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

import pygame

from .clock import RealClock
from .config import GameSettings, configure_logging
from .engine import GAME_TITLE, GameEngine, SessionSnapshot, build_game_engine
from .levels import LEVELS, MAX_LEVEL, ROUNDS_PER_LEVEL
from .session import STARTING_LIVES, TIME_BONUS_PER_SECOND, Status

WINDOW_SIZE = (540, 760)
TARGET_FPS = 60

_BG = (30, 60, 114)
_PANEL = (42, 82, 152)
_TEXT_MAIN = (245, 247, 255)
_TEXT_MUTED = (200, 208, 235)
_BUTTON = (102, 126, 234)
_BUTTON_ALT = (118, 75, 162)
_LOCKED = (90, 96, 120)
_WIN = (46, 160, 90)
_LOSS = (200, 60, 60)
_HEART = (235, 70, 90)

_NUMBER_KEYS: dict[int, int] = {
    pygame.K_1: 1,
    pygame.K_2: 2,
    pygame.K_3: 3,
    pygame.K_4: 4,
    pygame.K_5: 5,
    pygame.K_6: 6,
    pygame.K_KP1: 1,
    pygame.K_KP2: 2,
    pygame.K_KP3: 3,
    pygame.K_KP4: 4,
    pygame.K_KP5: 5,
    pygame.K_KP6: 6,
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


class App:
    """Owns the window surface and the active screen."""

    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screen: Screen | None = None
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def show(self, screen: Screen) -> None:
        self._screen = screen

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if self._screen is not None:
            self._screen.handle_event(event)

    def render(self) -> None:
        if self._screen is not None:
            self._screen.render(self._surface)


class GameScreen:
    def __init__(self, app: App, *, engine: GameEngine) -> None:
        self._app = app
        self._engine = engine
        self._title_font = pygame.font.Font(None, 54)
        self._big_font = pygame.font.Font(None, 42)
        self._body_font = pygame.font.Font(None, 30)
        self._hint_font = pygame.font.Font(None, 22)
        # Rebuilt every render; clicks hit-test against the last drawn frame.
        self._hit_targets: list[tuple[pygame.Rect, Callable[[], None]]] = []

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            self._handle_key(event.key)
            return
        if event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 1) == 1:
            for rect, action in list(self._hit_targets):
                if rect.collidepoint(event.pos):
                    action()
                    return

    def _handle_key(self, key: int) -> None:
        engine = self._engine
        status = engine.status
        confirm = key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE)
        back = key in (pygame.K_ESCAPE, pygame.K_BACKSPACE, pygame.K_h)
        number = _NUMBER_KEYS.get(key)

        if status is Status.HOMEPAGE:
            if confirm:
                engine.start_game_from_homepage()
            elif number is not None:
                engine.start_game_at_level(number)
            elif key == pygame.K_ESCAPE:
                self._app.quit()
        elif status is Status.WAITING:
            if confirm:
                engine.start_level(1)
            elif back:
                engine.return_to_homepage()
        elif status is Status.PLAYING:
            if number is not None:
                board = engine.state.board
                if number <= len(board):
                    engine.handle_color_click(board[number - 1])
            elif back:
                engine.return_to_homepage()
        elif status is Status.LEVEL_SUMMARY:
            if confirm:
                self._summary_action()
            elif back:
                engine.return_to_homepage()
        elif status is Status.FAILED:
            if confirm or back:
                engine.return_to_homepage()

    def _summary_action(self) -> None:
        if self._engine.state.summary.is_win:
            self._engine.continue_to_next_level()
        else:
            self._engine.retry_level()

    def render(self, surface: pygame.Surface) -> None:
        snap = self._engine.snapshot()
        self._hit_targets = []

        w, h = surface.get_size()
        surface.fill(_BG)

        title = self._title_font.render(snap.title, True, _TEXT_MAIN)
        surface.blit(title, title.get_rect(midtop=(w // 2, 24)))
        subtitle = self._hint_font.render("Train your brain to go against instinct.", True, _TEXT_MUTED)
        surface.blit(subtitle, subtitle.get_rect(midtop=(w // 2, 72)))

        content = pygame.Rect(24, 110, max(200, w - 48), max(200, h - 150))

        if snap.status is Status.HOMEPAGE:
            self._render_homepage(surface, content, snap)
        elif snap.status is Status.WAITING:
            self._render_waiting(surface, content)
        elif snap.status is Status.PLAYING:
            self._render_playing(surface, content, snap)
        elif snap.status is Status.LEVEL_SUMMARY:
            self._render_summary(surface, content, snap)
        elif snap.status is Status.FAILED:
            self._render_failed(surface, content, snap)

        footer = self._footer(snap.status)
        foot = self._hint_font.render(footer, True, _TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 10)))

    def _render_homepage(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        y = self._render_intro(surface, rect)
        start = pygame.Rect(0, 0, min(320, rect.w), 64)
        start.midtop = (rect.centerx, y + 20)
        self._button(surface, start, "START GAME", _BUTTON, self._engine.start_game_from_homepage)

        label = self._body_font.render("Or choose a level:", True, _TEXT_MUTED)
        surface.blit(label, label.get_rect(midtop=(rect.centerx, start.bottom + 32)))

        cols = 3
        gap = 12
        cell_w = (min(rect.w, 420) - gap * (cols - 1)) // cols
        cell_h = 56
        grid_x = rect.centerx - (cell_w * cols + gap * (cols - 1)) // 2
        grid_y = start.bottom + 70
        for idx, level in enumerate(LEVELS):
            r = pygame.Rect(
                grid_x + (idx % cols) * (cell_w + gap),
                grid_y + (idx // cols) * (cell_h + gap + 18),
                cell_w,
                cell_h,
            )
            if level.level_id in snap.unlocked_levels:
                self._button(
                    surface,
                    r,
                    f"Level {level.level_id}",
                    _BUTTON_ALT,
                    lambda lid=level.level_id: self._engine.start_game_at_level(lid),
                )
                name = self._hint_font.render(level.name, True, _TEXT_MUTED)
                surface.blit(name, name.get_rect(midtop=(r.centerx, r.bottom + 2)))
            else:
                pygame.draw.rect(surface, _LOCKED, r, border_radius=10)
                text = self._body_font.render("Locked", True, _TEXT_MUTED)
                surface.blit(text, text.get_rect(center=r.center))

    def _render_waiting(self, surface: pygame.Surface, rect: pygame.Rect) -> None:
        y = self._render_intro(surface, rect)
        start = pygame.Rect(0, 0, min(320, rect.w), 64)
        start.midtop = (rect.centerx, y + 20)
        self._button(surface, start, "START GAME", _BUTTON, lambda: self._engine.start_level(1))

    def _render_intro(self, surface: pygame.Surface, rect: pygame.Rect) -> int:
        ready = self._big_font.render("Ready to play?", True, _TEXT_MAIN)
        surface.blit(ready, ready.get_rect(midtop=(rect.centerx, rect.y + 20)))
        y = rect.y + 74
        for line in ("You'll hear a color. Do NOT select it.", "If you do, you lose!"):
            text = self._body_font.render(line, True, _TEXT_MUTED)
            surface.blit(text, text.get_rect(midtop=(rect.centerx, y)))
            y += 32
        return y

    def _render_playing(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        top = pygame.Rect(rect.x, rect.y, rect.w, 44)
        for i in range(STARTING_LIVES):
            center = (top.x + 18 + i * 34, top.centery)
            if i < snap.lives:
                pygame.draw.circle(surface, _HEART, center, 12)
            else:
                pygame.draw.circle(surface, _HEART, center, 12, 2)
        score = self._body_font.render(f"Score: {snap.score}", True, _TEXT_MAIN)
        surface.blit(score, score.get_rect(midright=(top.right - 8, top.centery)))

        status = self._big_font.render(
            f"Level {snap.level} - Time: {snap.displayed_remaining_s}s", True, _TEXT_MAIN
        )
        surface.blit(status, status.get_rect(midtop=(rect.centerx, top.bottom + 16)))
        color_no = min(snap.round_index + 1, ROUNDS_PER_LEVEL)
        progress = self._hint_font.render(
            f"{snap.level_name}  |  Color {color_no} of {ROUNDS_PER_LEVEL}", True, _TEXT_MUTED
        )
        surface.blit(progress, progress.get_rect(midtop=(rect.centerx, top.bottom + 56)))
        about = self._hint_font.render(snap.level_description, True, _TEXT_MUTED)
        surface.blit(about, about.get_rect(midtop=(rect.centerx, top.bottom + 78)))

        grid_top = top.bottom + 108
        cells = snap.board
        cols = 2
        rows = max(1, (len(cells) + cols - 1) // cols)
        gap = 18
        size = max(60, min((rect.w - gap) // cols, (rect.bottom - grid_top - gap * (rows - 1)) // rows, 200))
        grid_w = size * cols + gap * (cols - 1)
        x0 = rect.centerx - grid_w // 2
        for idx, color in enumerate(cells):
            r = pygame.Rect(x0 + (idx % cols) * (size + gap), grid_top + (idx // cols) * (size + gap), size, size)
            pygame.draw.rect(surface, color.rgb, r, border_radius=18)
            if snap.accepting_clicks:
                self._hit_targets.append((r, lambda c=color: self._engine.handle_color_click(c)))
            key = self._hint_font.render(str(idx + 1), True, _TEXT_MAIN)
            surface.blit(key, (r.x + 10, r.y + 8))

    def _render_summary(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        win = snap.summary.is_win
        panel = pygame.Rect(rect.x, rect.y + 20, rect.w, 320)
        pygame.draw.rect(surface, _WIN if win else _LOSS, panel, border_radius=16)

        heading = f"Level {snap.level} Complete!" if win else f"Level {snap.level} Failed!"
        text = self._big_font.render(heading, True, _TEXT_MAIN)
        surface.blit(text, text.get_rect(midtop=(panel.centerx, panel.y + 20)))

        if win:
            lines = [
                f"{ROUNDS_PER_LEVEL} colors found = +{snap.summary.base} pts",
                f"+{snap.summary.time // TIME_BONUS_PER_SECOND}s saved = +{snap.summary.time} pts",
                f"TOTAL = +{snap.summary.total} pts",
            ]
        else:
            lines = [
                f"Wrong color = {snap.summary.total} pts",
                f"TOTAL = {snap.summary.total} pts",
                f"Lives left: {snap.lives}",
            ]
        y = panel.y + 80
        for line in lines:
            t = self._body_font.render(line, True, _TEXT_MAIN)
            surface.blit(t, t.get_rect(midtop=(panel.centerx, y)))
            y += 38

        button = pygame.Rect(0, 0, min(280, panel.w - 40), 56)
        button.midbottom = (panel.centerx, panel.bottom - 20)
        label = "Next Level" if win else "Retry Level"
        if win and snap.level >= MAX_LEVEL:
            label = "Play Again"
        self._button(surface, button, label, _PANEL, self._summary_action)

    def _render_failed(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        text = self._title_font.render("GAME OVER", True, _LOSS)
        surface.blit(text, text.get_rect(midtop=(rect.centerx, rect.y + 60)))
        score = self._body_font.render(f"Final Score: {snap.score}", True, _TEXT_MAIN)
        surface.blit(score, score.get_rect(midtop=(rect.centerx, rect.y + 130)))
        button = pygame.Rect(0, 0, min(280, rect.w), 56)
        button.midtop = (rect.centerx, rect.y + 190)
        self._button(surface, button, "Back to Home", _BUTTON, self._engine.return_to_homepage)

    def _button(
        self,
        surface: pygame.Surface,
        rect: pygame.Rect,
        label: str,
        fill: tuple[int, int, int],
        action: Callable[[], None],
    ) -> None:
        pygame.draw.rect(surface, fill, rect, border_radius=12)
        pygame.draw.rect(surface, _TEXT_MAIN, rect, 2, border_radius=12)
        text = self._body_font.render(label, True, _TEXT_MAIN)
        surface.blit(text, text.get_rect(center=rect.center))
        self._hit_targets.append((rect, action))

    @staticmethod
    def _footer(status: Status) -> str:
        if status is Status.HOMEPAGE:
            return "Enter: Start  |  1-6: Pick level  |  Esc: Quit"
        if status is Status.PLAYING:
            return "1-4: Press button  |  Esc/H: Home"
        if status is Status.FAILED:
            return "Enter: Back to Home"
        return "Enter: Continue  |  Esc: Home"


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    settings: GameSettings | None = None,
    engine_factory: Callable[[GameSettings], GameEngine] | None = None,
) -> int:
    settings = settings or GameSettings.from_env()
    configure_logging(settings.log_level)
    return asyncio.run(
        _run_async(
            max_frames=max_frames,
            event_injector=event_injector,
            settings=settings,
            engine_factory=engine_factory or _default_engine,
        )
    )


def _default_engine(settings: GameSettings) -> GameEngine:
    return build_game_engine(settings, clock=RealClock())


async def _run_async(
    *,
    max_frames: int | None,
    event_injector: Callable[[int], None] | None,
    settings: GameSettings,
    engine_factory: Callable[[GameSettings], GameEngine],
) -> int:
    pygame.init()

    pygame.display.set_caption(GAME_TITLE)
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    clock = pygame.time.Clock()

    app = App(surface=surface)
    # Built inside the running loop so timer and speech tasks attach to it.
    engine = engine_factory(settings)
    app.show(GameScreen(app, engine=engine))

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
            # Yield so the timer driver and speech tasks get to run.
            await asyncio.sleep(0)
    finally:
        engine.close()
        pygame.quit()

    return 0
