from __future__ import annotations

from dataclasses import dataclass

from .colors import ColorToken
from .levels import DUPLICATE_BOARD_LEVEL, level_config
from .rng import RandomSource, pick, shuffled

# Both retry loops give up after this many candidates and keep the last one.
MAX_ATTEMPTS = 10

# A fourth identical forbidden color in a row is redrawn.
MAX_RUN = 3

# Levels that refuse to show the same arrangement twice in a row.
_NO_REPEAT_MAX_LEVEL = 2


@dataclass(frozen=True, slots=True)
class SequenceSpec:
    colors: tuple[ColorToken, ...]
    palette: tuple[ColorToken, ...]

    def __len__(self) -> int:
        return len(self.colors)

    def __getitem__(self, index: int) -> ColorToken:
        return self.colors[index]


class ColorSequenceGenerator:
    """Draws the per-round forbidden colors for a level.

    Runs of identical colors are capped at MAX_RUN. A candidate that would
    extend a run past the cap is redrawn, up to MAX_ATTEMPTS draws in total
    for that position; the last draw is kept even if it breaks the cap.
    """

    def __init__(self, rng: RandomSource) -> None:
        self._rng = rng

    def next_sequence(self, level_id: int) -> SequenceSpec:
        config = level_config(level_id)
        palette = config.palette
        colors: list[ColorToken] = []
        for i in range(config.total_rounds):
            candidate = pick(self._rng, palette)
            attempts = 1
            while attempts < MAX_ATTEMPTS and self._extends_run(colors, i, candidate):
                candidate = pick(self._rng, palette)
                attempts += 1
            colors.append(candidate)
        return SequenceSpec(colors=tuple(colors), palette=palette)

    @staticmethod
    def _extends_run(colors: list[ColorToken], i: int, candidate: ColorToken) -> bool:
        if i < MAX_RUN:
            return False
        return all(c is candidate for c in colors[i - MAX_RUN : i])


class BoardGenerator:
    def __init__(self, rng: RandomSource) -> None:
        self._rng = rng

    def next_board(
        self,
        level_id: int,
        forbidden: ColorToken,
        previous: tuple[ColorToken, ...] = (),
    ) -> tuple[ColorToken, ...]:
        cells = self._cells(level_id, forbidden)
        if level_id > _NO_REPEAT_MAX_LEVEL or not previous:
            return tuple(shuffled(self._rng, cells))

        arrangement = tuple(shuffled(self._rng, cells))
        attempts = 1
        while attempts < MAX_ATTEMPTS and arrangement == tuple(previous):
            arrangement = tuple(shuffled(self._rng, cells))
            attempts += 1
        return arrangement

    @staticmethod
    def _cells(level_id: int, forbidden: ColorToken) -> list[ColorToken]:
        palette = level_config(level_id).palette
        if level_id != DUPLICATE_BOARD_LEVEL:
            # Level 6 is flagged duplicate_mode in the catalog but still gets
            # the plain palette board.
            return list(palette)
        others = [c for c in palette if c is not forbidden]
        return [forbidden, forbidden, others[0], others[1]]
