"""MeasureBuilder: packs rendered entries into fixed-capacity measures."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Final

from mmlvox.durations import TICKS_PER_QUARTER, TICKS_PER_WHOLE
from mmlvox.score_models import Entry, Measure, MeasureAttributes, RestEntry

logger = logging.getLogger(__name__)

#: Capacity of one 4/4 measure in ticks.
MEASURE_TICKS: Final[int] = TICKS_PER_WHOLE


def default_attributes() -> MeasureAttributes:
    """Attributes of the first measure: C major, 4/4, treble clef."""
    return MeasureAttributes(divisions=TICKS_PER_QUARTER)


@dataclass
class EngineState:
    """
    Mutable state of one layout pass.

    Attributes:
        entries:     Entries of the open measure.
        ticks_used:  Ticks consumed in the open measure.
        number:      Number of the open measure.
        measures:    Closed measures, in order.
    """

    entries: list[Entry] = field(default_factory=list)
    ticks_used: int = 0
    number: int = 1
    measures: list[Measure] = field(default_factory=list)


class MeasureBuilder:
    """
    Owns the growing measure sequence of a layout pass.

    The builder does not reject overflow; callers split entries so that
    ``append`` never pushes ``ticks_used`` past ``capacity``.
    """

    def __init__(
        self,
        state: EngineState | None = None,
        capacity: int = MEASURE_TICKS,
        attributes: MeasureAttributes | None = None,
    ) -> None:
        self.state = state if state is not None else EngineState()
        self.capacity = capacity
        self.attributes = attributes if attributes is not None else default_attributes()
        self._finalized = False

    @property
    def ticks_used(self) -> int:
        return self.state.ticks_used

    @property
    def measure_number(self) -> int:
        return self.state.number

    def remaining_capacity(self) -> int:
        """Ticks still free in the open measure."""
        return self.capacity - self.state.ticks_used

    def append(self, entry: Entry, ticks: int) -> None:
        """Add an entry to the open measure and consume ``ticks``."""
        self.state.entries.append(entry)
        self.state.ticks_used += ticks

    def attach(self, entry: Entry) -> None:
        """Add an entry that takes no time, such as a tempo direction."""
        self.state.entries.append(entry)

    def close_and_open_next(self) -> None:
        """Close the open measure and start the next numbered one."""
        state = self.state
        measure = Measure(
            number=state.number,
            entries=tuple(state.entries),
            attributes=self.attributes if state.number == 1 else None,
        )
        state.measures.append(measure)
        logger.debug("closed measure %d (%d/%d ticks)", state.number, state.ticks_used, self.capacity)

        state.entries = []
        state.ticks_used = 0
        state.number += 1

    def finalize(self) -> list[Measure]:
        """
        Flush the trailing measure and return all closed measures.

        A partly filled measure is padded with one rest; a measure that
        consumed no ticks is dropped.
        """
        if self._finalized:
            raise RuntimeError("finalize() was already called for this layout pass.")
        self._finalized = True

        if self.state.ticks_used > 0:
            remaining = self.remaining_capacity()
            if remaining > 0:
                self.append(RestEntry(duration=remaining), remaining)
            self.close_and_open_next()
        return list(self.state.measures)
