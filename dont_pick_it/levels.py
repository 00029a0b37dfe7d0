from __future__ import annotations

from dataclasses import dataclass

from .colors import ColorToken, palette_subset

MIN_LEVEL = 1
MAX_LEVEL = 6
ROUNDS_PER_LEVEL = 10

# Only this level pads the board with two copies of the forbidden color.
DUPLICATE_BOARD_LEVEL = 5

_TIME_LIMITS_S: dict[int, float] = {1: 20.0, 2: 15.0, 3: 20.0, 4: 15.0, 5: 15.0, 6: 5.0}
_FALLBACK_TIME_LIMIT_S = 5.0


@dataclass(frozen=True, slots=True)
class LevelConfig:
    level_id: int
    name: str
    time_limit_s: float
    color_arity: int
    duplicate_mode: bool
    description: str
    total_rounds: int = ROUNDS_PER_LEVEL

    @property
    def palette(self) -> tuple[ColorToken, ...]:
        return palette_subset(self.color_arity)


LEVELS: tuple[LevelConfig, ...] = (
    LevelConfig(
        level_id=1,
        name="Easy Start",
        time_limit_s=_TIME_LIMITS_S[1],
        color_arity=2,
        duplicate_mode=False,
        description="Two colors. Tap the one you did not hear.",
    ),
    LevelConfig(
        level_id=2,
        name="More Colors",
        time_limit_s=_TIME_LIMITS_S[2],
        color_arity=2,
        duplicate_mode=False,
        description="Two colors, less time.",
    ),
    LevelConfig(
        level_id=3,
        name="Speed Challenge",
        time_limit_s=_TIME_LIMITS_S[3],
        color_arity=4,
        duplicate_mode=False,
        description="All four colors.",
    ),
    LevelConfig(
        level_id=4,
        name="Full Speed",
        time_limit_s=_TIME_LIMITS_S[4],
        color_arity=4,
        duplicate_mode=False,
        description="All four colors, less time.",
    ),
    LevelConfig(
        level_id=5,
        name="Duplicate Challenge",
        time_limit_s=_TIME_LIMITS_S[5],
        color_arity=4,
        duplicate_mode=True,
        description="The forbidden color shows up twice.",
    ),
    LevelConfig(
        level_id=6,
        name="Master Challenge",
        time_limit_s=_TIME_LIMITS_S[6],
        color_arity=4,
        duplicate_mode=True,
        description="Five seconds for all ten colors.",
    ),
)


def level_config(level_id: int) -> LevelConfig:
    """Catalog lookup. Ids outside [MIN_LEVEL, MAX_LEVEL] are a caller bug."""

    if not (MIN_LEVEL <= int(level_id) <= MAX_LEVEL):
        raise ValueError(f"level_id must be in [{MIN_LEVEL}, {MAX_LEVEL}], got {level_id!r}")
    return LEVELS[int(level_id) - 1]


def time_limit_for(level_id: int) -> float:
    return _TIME_LIMITS_S.get(int(level_id), _FALLBACK_TIME_LIMIT_S)


def clamp_level(level_id: int) -> int:
    return MIN_LEVEL if level_id <= MIN_LEVEL else MAX_LEVEL if level_id >= MAX_LEVEL else int(level_id)
