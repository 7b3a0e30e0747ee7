from __future__ import annotations

from enum import StrEnum

# Grid cells around the centre of a 3x3 board.
POSITIONS = 8

LETTERS: tuple[str, ...] = ("C", "H", "K", "L", "Q", "R", "S", "T")
NUMBERS: tuple[str, ...] = tuple(str(n) for n in range(14))
NATO: tuple[str, ...] = (
    "ALPHA",
    "BRAVO",
    "CHARLIE",
    "DELTA",
    "ECHO",
    "FOXTROT",
    "GOLF",
    "HOTEL",
)
COLORS: tuple[str, ...] = ("blue", "green", "yellow", "red")
SHAPES: tuple[str, ...] = ("circle", "triangle", "square", "diamond")

DEFAULT_SOUND_SET = "letters"

SOUND_SETS: dict[str, tuple[str, ...]] = {
    "letters": LETTERS,
    "numbers": NUMBERS[:8],
    "nato": NATO,
}


class ArithmeticOperation(StrEnum):
    PLUS = "plus"
    MINUS = "minus"
    TIMES = "times"
    DIVIDE = "divide"


ARITHMETIC_OPERATIONS: tuple[ArithmeticOperation, ...] = tuple(ArithmeticOperation)


def sound_set(name: str | None) -> tuple[str, ...]:
    """Return the symbol pool for a sound set name.

    Sets without a symbolic pool (``piano``, ``morse``) and unknown names use letters.
    """

    if not name:
        return LETTERS
    return SOUND_SETS.get(str(name), LETTERS)
