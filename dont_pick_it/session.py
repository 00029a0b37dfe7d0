"""Session state machine.

Every transition is a plain function ``(SessionState, ...) -> SessionState``.
Nothing here reads the clock, speaks or schedules anything; callers pass the
current time in and react to the returned state. A call that does not apply
to the current status returns the state it was given.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum

from .colors import ColorToken
from .generation import BoardGenerator, ColorSequenceGenerator, SequenceSpec
from .levels import MAX_LEVEL, MIN_LEVEL, ROUNDS_PER_LEVEL, clamp_level, level_config, time_limit_for

STARTING_LIVES = 3
POINTS_PER_ROUND = 10
TIME_BONUS_PER_SECOND = 10
MISS_PENALTY = 10


class Status(str, Enum):
    HOMEPAGE = "homepage"
    WAITING = "waiting"
    PLAYING = "playing"
    LEVEL_SUMMARY = "level_summary"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    base: int = 0
    time: int = 0
    total: int = 0

    @property
    def is_win(self) -> bool:
        return self.total > 0


PENALTY_BREAKDOWN = ScoreBreakdown(base=0, time=0, total=-MISS_PENALTY)


@dataclass(frozen=True, slots=True)
class SessionState:
    status: Status = Status.HOMEPAGE
    level: int = MIN_LEVEL
    score: int = 0
    lives: int = STARTING_LIVES
    round_index: int = 0
    sequence: SequenceSpec | None = None
    board: tuple[ColorToken, ...] = ()
    round_started_at_s: float = 0.0
    time_limit_s: float = 0.0
    transitioning: bool = False
    is_game_active: bool = False
    unlocked_levels: frozenset[int] = field(default_factory=lambda: frozenset({MIN_LEVEL}))
    summary: ScoreBreakdown = ScoreBreakdown()

    @property
    def forbidden_color(self) -> ColorToken | None:
        if self.sequence is None or not (0 <= self.round_index < len(self.sequence)):
            return None
        return self.sequence[self.round_index]

    def is_unlocked(self, level: int) -> bool:
        return level in self.unlocked_levels


def initial_state() -> SessionState:
    return SessionState()


def time_remaining_s(state: SessionState, now_s: float) -> float:
    if not state.is_game_active:
        return 0.0
    elapsed = float(now_s) - state.round_started_at_s
    return max(0.0, state.time_limit_s - elapsed)


def start_game_from_homepage(state: SessionState) -> SessionState:
    if state.status is not Status.HOMEPAGE:
        return state
    return replace(
        state,
        status=Status.WAITING,
        level=MIN_LEVEL,
        score=0,
        lives=STARTING_LIVES,
    )


def start_level(
    state: SessionState,
    level: int,
    *,
    now_s: float,
    sequences: ColorSequenceGenerator,
    boards: BoardGenerator,
) -> SessionState:
    if state.status not in (Status.HOMEPAGE, Status.WAITING, Status.LEVEL_SUMMARY):
        return state

    level_config(level)
    sequence = sequences.next_sequence(level)
    board = boards.next_board(level, sequence[0], ())
    return replace(
        state,
        status=Status.PLAYING,
        level=level,
        round_index=0,
        sequence=sequence,
        board=board,
        round_started_at_s=float(now_s),
        time_limit_s=time_limit_for(level),
        transitioning=False,
        is_game_active=True,
    )


def start_game_at_level(
    state: SessionState,
    level: int,
    *,
    now_s: float,
    sequences: ColorSequenceGenerator,
    boards: BoardGenerator,
) -> SessionState:
    if state.status is not Status.HOMEPAGE or not state.is_unlocked(level):
        return state
    return start_level(state, level, now_s=now_s, sequences=sequences, boards=boards)


def handle_color_click(
    state: SessionState,
    color: ColorToken,
    *,
    now_s: float,
    boards: BoardGenerator,
) -> SessionState:
    if state.status is not Status.PLAYING or state.transitioning:
        return state

    forbidden = state.forbidden_color
    assert forbidden is not None and state.sequence is not None

    if color == forbidden:
        return _apply_penalty(state)

    if state.round_index >= len(state.sequence) - 1:
        return _complete_level(state, now_s=now_s)

    next_index = state.round_index + 1
    latched = replace(state, transitioning=True)
    board = boards.next_board(state.level, state.sequence[next_index], state.board)
    return replace(latched, round_index=next_index, board=board, transitioning=False)


def expire(state: SessionState) -> SessionState:
    """Timeout: same outcome as clicking the forbidden color."""

    if state.status is not Status.PLAYING:
        return state
    return _apply_penalty(state)


def continue_to_next_level(
    state: SessionState,
    *,
    now_s: float,
    sequences: ColorSequenceGenerator,
    boards: BoardGenerator,
) -> SessionState:
    if state.status is not Status.LEVEL_SUMMARY or not state.summary.is_win:
        return state
    next_level = clamp_level(state.level + 1)
    return start_level(state, next_level, now_s=now_s, sequences=sequences, boards=boards)


def retry_level(
    state: SessionState,
    *,
    now_s: float,
    sequences: ColorSequenceGenerator,
    boards: BoardGenerator,
) -> SessionState:
    if state.status is not Status.LEVEL_SUMMARY or state.summary.is_win:
        return state
    return start_level(state, state.level, now_s=now_s, sequences=sequences, boards=boards)


def return_to_homepage(state: SessionState) -> SessionState:
    return replace(
        state,
        status=Status.HOMEPAGE,
        round_index=0,
        sequence=None,
        board=(),
        transitioning=False,
        is_game_active=False,
    )


def reset_game(state: SessionState) -> SessionState:
    return replace(initial_state(), unlocked_levels=state.unlocked_levels)


def _complete_level(state: SessionState, *, now_s: float) -> SessionState:
    elapsed = float(now_s) - state.round_started_at_s
    actual_remaining = max(0.0, state.time_limit_s - elapsed)
    base = POINTS_PER_ROUND * ROUNDS_PER_LEVEL
    time_bonus = int(math.floor(actual_remaining)) * TIME_BONUS_PER_SECOND
    total = base + time_bonus

    unlocked = state.unlocked_levels
    next_level = state.level + 1
    if next_level <= MAX_LEVEL and next_level not in unlocked:
        unlocked = unlocked | {next_level}

    return replace(
        state,
        status=Status.LEVEL_SUMMARY,
        score=state.score + total,
        round_index=ROUNDS_PER_LEVEL,
        transitioning=False,
        is_game_active=False,
        unlocked_levels=unlocked,
        summary=ScoreBreakdown(base=base, time=time_bonus, total=total),
    )


def _apply_penalty(state: SessionState) -> SessionState:
    score = max(0, state.score - MISS_PENALTY)
    lives = max(0, state.lives - 1)
    if score <= 0 or lives <= 0:
        return replace(
            state,
            status=Status.FAILED,
            score=0,
            lives=STARTING_LIVES,
            level=MIN_LEVEL,
            transitioning=False,
            is_game_active=False,
            summary=PENALTY_BREAKDOWN,
        )
    return replace(
        state,
        status=Status.LEVEL_SUMMARY,
        score=score,
        lives=lives,
        transitioning=False,
        is_game_active=False,
        summary=PENALTY_BREAKDOWN,
    )
