"""Duration resolution: MML length codes to integer ticks."""

from typing import Final

#: Ticks per whole note. 48 keeps sixteenths, eighth triplets and dotted
#: values integral.
TICKS_PER_WHOLE: Final[int] = 48

#: Ticks per quarter note, the MusicXML ``divisions`` value.
TICKS_PER_QUARTER: Final[int] = TICKS_PER_WHOLE // 4

# Denominators that divide 48 evenly. 5, 7, 9, 10, 11 and 13+ (other than
# 16, 24 and 48) cannot be expressed at this resolution.
_TICKS: Final[dict[int, int]] = {
    1: 48,
    2: 24,
    3: 16,
    4: 12,
    6: 8,
    8: 6,
    12: 4,
    16: 3,
    24: 2,
    48: 1,
}

# Dotting multiplies by 3/2, so only even base values have a dotted form.
_DOTTED_TICKS: Final[dict[int, int]] = {
    length: ticks * 3 // 2 for length, ticks in _TICKS.items() if ticks % 2 == 0
}

SUPPORTED_LENGTHS: Final[tuple[int, ...]] = tuple(sorted(_TICKS))


class InvalidLengthError(ValueError):
    """Raised when a length code has no exact tick value."""

    def __init__(self, length: int, dotted: bool = False, source: str = "") -> None:
        self.length = length
        self.dotted = dotted
        self.source = source
        label = f"{length}." if dotted else str(length)
        if dotted and length in _TICKS:
            message = (
                f"Length {label} is not supported: a dotted 1/{length} is "
                f"{_TICKS[length] * 3}/2 ticks at {TICKS_PER_WHOLE} ticks per whole note. "
                f"Write it without the dot or as two notes."
            )
        else:
            message = f"Length {label} is not supported."
        if source:
            message += f" (in '{source}')"
        super().__init__(message)


def lookup_ticks(length: int, dotted: bool = False) -> int | None:
    """Return the tick count for a length code, or ``None`` if it has none."""
    table = _DOTTED_TICKS if dotted else _TICKS
    return table.get(length)


def resolve(length: int, dotted: bool = False, source: str = "") -> int:
    """
    Resolve a length code (and dot flag) to ticks.

    Args:
        length: Note value denominator, e.g. 4 for a quarter note.
        dotted: Extend the value by half.
        source: MML fragment reported in the error message.

    Raises:
        InvalidLengthError: If the length has no exact tick value.
    """
    ticks = lookup_ticks(length, dotted)
    if ticks is None:
        raise InvalidLengthError(length, dotted, source)
    return ticks
