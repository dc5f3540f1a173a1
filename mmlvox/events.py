"""Input event variants consumed by the score layout engine."""

from dataclasses import dataclass
from typing import Union

#: Trailing lyric character that requests a breath mark after the note.
BREATH_MARK = ","


@dataclass(frozen=True)
class Note:
    """
    A sung note.

    Attributes:
        length:  Length code, the denominator of the note value (4 = quarter).
        dotted:  Whether the note value is extended by half.
        step:    Pitch letter ``A``..``G``.
        alter:   -1 (flat), 0 or +1 (sharp).
        octave:  Scientific octave number (4 = middle C octave).
        lyric:   Syllable sung on the note, optionally ending in ``BREATH_MARK``.
        source:  The MML fragment the note was parsed from.
        offset:  Character offset of ``source`` in the MML text.
    """

    length: int
    dotted: bool
    step: str
    alter: int
    octave: int
    lyric: str
    source: str = ""
    offset: int = 0


@dataclass(frozen=True)
class Rest:
    """A silence of the given length code."""

    length: int
    dotted: bool
    source: str = ""
    offset: int = 0


@dataclass(frozen=True)
class TempoChange:
    """A tempo marking in quarter-note beats per minute."""

    bpm: int


Event = Union[Note, Rest, TempoChange]
