"""Data models for the measure-structured score document."""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class TieRole(Enum):
    """Position of a fragment within a tie chain."""

    NONE = "none"
    START = "start"
    MIDDLE = "middle"
    END = "end"

    @property
    def tie_types(self) -> tuple[str, ...]:
        """MusicXML ``tie``/``tied`` type values, in document order."""
        if self is TieRole.START:
            return ("start",)
        if self is TieRole.MIDDLE:
            return ("stop", "start")
        if self is TieRole.END:
            return ("stop",)
        return ()


@dataclass(frozen=True)
class NoteEntry:
    """One notated note (or one fragment of a tied note)."""

    step: str
    alter: int
    octave: int
    duration: int
    tie: TieRole = TieRole.NONE
    lyric: str | None = None
    breath: bool = False


@dataclass(frozen=True)
class RestEntry:
    """A notated rest."""

    duration: int


@dataclass(frozen=True)
class TempoDirection:
    """Metronome marking placed at its position within a measure."""

    bpm: int


Entry = Union[NoteEntry, RestEntry, TempoDirection]


@dataclass(frozen=True)
class MeasureAttributes:
    """Global attributes carried by the first measure."""

    divisions: int
    fifths: int = 0
    beats: int = 4
    beat_type: int = 4
    clef_sign: str = "G"
    clef_line: int = 2


@dataclass(frozen=True)
class Measure:
    """A closed measure. ``entries`` keeps insertion order."""

    number: int
    entries: tuple[Entry, ...]
    attributes: MeasureAttributes | None = None

    @property
    def ticks_used(self) -> int:
        return sum(entry.duration for entry in self.entries if not isinstance(entry, TempoDirection))


@dataclass(frozen=True)
class ScoreDocument:
    """Laid-out score handed to the MusicXML writer and preview renderers."""

    title: str
    measures: tuple[Measure, ...]
