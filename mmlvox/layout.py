"""
ScoreLayoutEngine: lays an event stream out into measures.

Each note is resolved to ticks and placed into the open measure. A note that
does not fit is split at every measure boundary it crosses into a tie chain
(START, MIDDLE..., END). The lyric is sung on the first fragment only; a
breath mark goes on the last.
"""

from __future__ import annotations

import logging
from typing import Iterable

from mmlvox.durations import resolve
from mmlvox.events import BREATH_MARK, Event, Note, Rest, TempoChange
from mmlvox.measure_builder import EngineState, MeasureBuilder
from mmlvox.score_models import NoteEntry, RestEntry, ScoreDocument, TempoDirection, TieRole

logger = logging.getLogger(__name__)


def split_breath(lyric: str) -> tuple[str, bool]:
    """Strip trailing breath markers from a lyric, reporting whether any were present."""
    if lyric.endswith(BREATH_MARK):
        return lyric.rstrip(BREATH_MARK), True
    return lyric, False


class ScoreLayoutEngine:
    """
    Single-pass layout of one event stream.

    An engine instance serves exactly one pass: feed every event with
    ``feed()`` then call ``finish()``. Use ``layout_events()`` for the
    common case.
    """

    def __init__(self, builder: MeasureBuilder | None = None, title: str = "") -> None:
        self.builder = builder if builder is not None else MeasureBuilder(EngineState())
        self.title = title

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _place_note(self, note: Note) -> None:
        ticks = resolve(note.length, note.dotted, note.source)
        lyric, breath = split_breath(note.lyric)
        builder = self.builder
        chained = False

        while ticks > builder.remaining_capacity():
            room = builder.remaining_capacity()
            if room > 0:
                role = TieRole.MIDDLE if chained else TieRole.START
                builder.append(self._note_entry(note, room, role, lyric, breath), room)
                ticks -= room
                chained = True
            builder.close_and_open_next()

        role = TieRole.END if chained else TieRole.NONE
        builder.append(self._note_entry(note, ticks, role, lyric, breath), ticks)

    def _note_entry(
        self,
        note: Note,
        ticks: int,
        role: TieRole,
        lyric: str,
        breath: bool,
    ) -> NoteEntry:
        # Only the first fragment is sung; a held tie cannot be broken by a breath.
        sung = role in (TieRole.NONE, TieRole.START)
        terminal = role in (TieRole.NONE, TieRole.END)
        return NoteEntry(
            step=note.step,
            alter=note.alter,
            octave=note.octave,
            duration=ticks,
            tie=role,
            lyric=lyric if sung else None,
            breath=breath and terminal,
        )

    def _place_rest(self, rest: Rest) -> None:
        ticks = resolve(rest.length, rest.dotted, rest.source)
        builder = self.builder

        while ticks > builder.remaining_capacity():
            room = builder.remaining_capacity()
            if room > 0:
                builder.append(RestEntry(duration=room), room)
                ticks -= room
            builder.close_and_open_next()

        builder.append(RestEntry(duration=ticks), ticks)

    def _place_tempo(self, tempo: TempoChange) -> None:
        self.builder.attach(TempoDirection(bpm=tempo.bpm))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, event: Event) -> None:
        """
        Lay out one event.

        Raises:
            InvalidLengthError: If a note or rest has an unsupported length.
            TypeError: If ``event`` is not a known event variant.
        """
        if isinstance(event, Note):
            self._place_note(event)
        elif isinstance(event, Rest):
            self._place_rest(event)
        elif isinstance(event, TempoChange):
            self._place_tempo(event)
        else:
            raise TypeError(f"Unsupported event type: {type(event).__name__}")

    def finish(self) -> ScoreDocument:
        """Flush the trailing measure and return the finished document."""
        measures = self.builder.finalize()
        logger.info("laid out %d measure(s)", len(measures))
        return ScoreDocument(title=self.title, measures=tuple(measures))


def layout_events(events: Iterable[Event], title: str = "") -> ScoreDocument:
    """
    Lay out an event stream into a new score document.

    Each call uses fresh engine state, so independent passes never share
    counters. Nothing is returned if any event fails to resolve.

    Raises:
        InvalidLengthError: If a note or rest has an unsupported length.
    """
    engine = ScoreLayoutEngine(title=title)
    for event in events:
        engine.feed(event)
    return engine.finish()
