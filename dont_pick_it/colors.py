from __future__ import annotations

from enum import Enum


class ColorToken(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @property
    def hex(self) -> str:
        return DISPLAY_HEX[self]

    @property
    def rgb(self) -> tuple[int, int, int]:
        value = DISPLAY_HEX[self].lstrip("#")
        return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))

    @property
    def spoken(self) -> str:
        return self.value


# Fixed order: arity-limited subsets are always a prefix of this tuple.
PALETTE: tuple[ColorToken, ...] = (
    ColorToken.BLUE,
    ColorToken.GREEN,
    ColorToken.YELLOW,
    ColorToken.RED,
)

DISPLAY_HEX: dict[ColorToken, str] = {
    ColorToken.BLUE: "#4A90E2",
    ColorToken.GREEN: "#7ED321",
    ColorToken.YELLOW: "#F5A623",
    ColorToken.RED: "#D0021B",
}


def palette_subset(arity: int) -> tuple[ColorToken, ...]:
    if not (1 <= arity <= len(PALETTE)):
        raise ValueError(f"arity must be in [1, {len(PALETTE)}]")
    return PALETTE[:arity]
