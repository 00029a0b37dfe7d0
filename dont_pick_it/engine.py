"""Host-facing game engine.

Wraps the pure session transitions with the side effects they need: reading
the clock, arming the timer driver, dispatching spoken colors and notifying
listeners. The host (pygame UI, tests) only calls the methods here and reads
``snapshot()``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from . import session
from .announcer import AnnouncementDispatcher, AnnouncementSink, build_announcer
from .clock import Clock
from .colors import ColorToken
from .config import GameSettings
from .generation import BoardGenerator, ColorSequenceGenerator
from .levels import level_config
from .rng import RandomSource, SeededRng, new_seed
from .session import ScoreBreakdown, SessionState, Status
from .timer import TimerDriver

logger = logging.getLogger(__name__)

GAME_TITLE = "Don't Pick It!"


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the UI (pure data)."""

    title: str
    status: Status
    level: int
    level_name: str
    level_description: str
    score: int
    lives: int
    round_index: int
    board: tuple[ColorToken, ...]
    displayed_remaining_s: int
    unlocked_levels: frozenset[int]
    summary: ScoreBreakdown
    accepting_clicks: bool


Listener = Callable[[SessionSnapshot], None]


class GameEngine:
    def __init__(
        self,
        *,
        clock: Clock,
        rng: RandomSource,
        announcements: AnnouncementSink,
        settings: GameSettings | None = None,
        state: SessionState | None = None,
    ) -> None:
        self._settings = settings or GameSettings()
        self._clock = clock
        self._announcements = announcements
        self._sequences = ColorSequenceGenerator(rng)
        self._boards = BoardGenerator(rng)
        self._timer = TimerDriver(
            clock=clock,
            on_expire=self._on_timeout,
            interval_s=self._settings.tick_interval_s,
        )
        self._state = state if state is not None else session.initial_state()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> Status:
        return self._state.status

    @property
    def timer(self) -> TimerDriver:
        return self._timer

    # Operations

    def start_game_from_homepage(self) -> None:
        self._commit(session.start_game_from_homepage(self._state))

    def start_level(self, level: int) -> None:
        self._begin(
            session.start_level(
                self._state,
                level,
                now_s=self._clock.now(),
                sequences=self._sequences,
                boards=self._boards,
            )
        )

    def start_game_at_level(self, level: int) -> None:
        if not self._state.is_unlocked(level):
            logger.debug("Level %d is locked; ignoring", level)
        self._begin(
            session.start_game_at_level(
                self._state,
                level,
                now_s=self._clock.now(),
                sequences=self._sequences,
                boards=self._boards,
            )
        )

    def continue_to_next_level(self) -> None:
        self._begin(
            session.continue_to_next_level(
                self._state,
                now_s=self._clock.now(),
                sequences=self._sequences,
                boards=self._boards,
            )
        )

    def retry_level(self) -> None:
        self._begin(
            session.retry_level(
                self._state,
                now_s=self._clock.now(),
                sequences=self._sequences,
                boards=self._boards,
            )
        )

    def handle_color_click(self, color: ColorToken | str) -> None:
        token = ColorToken(color)
        # A click that lands after the deadline loses to the timeout.
        self.update()
        before = self._state
        after = session.handle_color_click(
            before,
            token,
            now_s=self._clock.now(),
            boards=self._boards,
        )
        if after is before:
            return

        self._commit(after)
        if after.status is Status.PLAYING and after.round_index != before.round_index:
            logger.debug("Round %d of level %d", after.round_index + 1, after.level)
            self._announce_forbidden(delay_s=0.0)

    def return_to_homepage(self) -> None:
        self._commit(session.return_to_homepage(self._state))

    def reset_game(self) -> None:
        self._commit(session.reset_game(self._state))

    def update(self) -> None:
        self._timer.tick()

    def close(self) -> None:
        self._timer.disarm()
        self._announcements.cancel_all()
        self._listeners.clear()

    # Read model

    def time_remaining_s(self) -> float:
        return session.time_remaining_s(self._state, self._clock.now())

    def snapshot(self) -> SessionSnapshot:
        s = self._state
        config = level_config(s.level)
        displayed = self._timer.displayed_remaining_s() if s.is_game_active else 0
        return SessionSnapshot(
            title=GAME_TITLE,
            status=s.status,
            level=s.level,
            level_name=config.name,
            level_description=config.description,
            score=s.score,
            lives=s.lives,
            round_index=s.round_index,
            board=s.board,
            displayed_remaining_s=displayed,
            unlocked_levels=s.unlocked_levels,
            summary=s.summary,
            accepting_clicks=s.status is Status.PLAYING and not s.transitioning,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Internals

    def _begin(self, new_state: SessionState) -> None:
        started = new_state is not self._state and new_state.status is Status.PLAYING
        self._commit(new_state)
        if not started:
            return
        logger.info(
            "Level %d started (%.0fs, score=%d, lives=%d)",
            new_state.level,
            new_state.time_limit_s,
            new_state.score,
            new_state.lives,
        )
        self._announce_forbidden(delay_s=self._settings.announce_delay_s)

    def _on_timeout(self) -> None:
        if self._state.status is not Status.PLAYING:
            return
        logger.info("Time is up on level %d", self._state.level)
        self._commit(session.expire(self._state))

    def _commit(self, new_state: SessionState) -> None:
        old = self._state
        if new_state is old:
            return
        self._state = new_state
        self._sync_timer(old, new_state)
        if new_state.status is not old.status:
            self._log_status_change(old, new_state)
        self._notify()

    def _sync_timer(self, old: SessionState, new: SessionState) -> None:
        if not new.is_game_active:
            if self._timer.armed:
                self._timer.disarm()
            return
        anchors_changed = (
            not old.is_game_active
            or old.round_started_at_s != new.round_started_at_s
            or old.sequence is not new.sequence
        )
        if anchors_changed:
            self._timer.arm(started_at_s=new.round_started_at_s, limit_s=new.time_limit_s)

    def _announce_forbidden(self, *, delay_s: float) -> None:
        color = self._state.forbidden_color
        if color is None:
            return
        self._announcements.dispatch(color.spoken, delay_s=delay_s)

    def _log_status_change(self, old: SessionState, new: SessionState) -> None:
        if new.status is Status.LEVEL_SUMMARY and new.summary.is_win:
            logger.info(
                "Level %d complete: +%d (base %d, time %d), score=%d",
                new.level,
                new.summary.total,
                new.summary.base,
                new.summary.time,
                new.score,
            )
        elif new.status is Status.LEVEL_SUMMARY:
            logger.info("Level %d missed: score=%d, lives=%d", new.level, new.score, new.lives)
        elif new.status is Status.FAILED:
            logger.info("Game over after level %d", old.level)
        else:
            logger.debug("Status %s -> %s", old.status.value, new.status.value)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)


def build_game_engine(settings: GameSettings, *, clock: Clock) -> GameEngine:
    rng = SeededRng(settings.seed if settings.seed is not None else new_seed())
    logger.debug("Session seed %d", rng.seed)
    announcer = build_announcer(disabled=settings.disable_tts, forced_backend=settings.tts_backend)
    return GameEngine(
        clock=clock,
        rng=rng,
        announcements=AnnouncementDispatcher(announcer),
        settings=settings,
    )
