"""Unit tests for MeasureBuilder bookkeeping."""

import pytest

from mmlvox.measure_builder import MEASURE_TICKS, EngineState, MeasureBuilder
from mmlvox.score_models import NoteEntry, RestEntry, TempoDirection


def _note(ticks: int) -> NoteEntry:
    return NoteEntry(step="C", alter=0, octave=4, duration=ticks, lyric="ら")


def test_new_builder_has_full_capacity() -> None:
    builder = MeasureBuilder()
    assert builder.remaining_capacity() == MEASURE_TICKS == 48
    assert builder.measure_number == 1


def test_append_consumes_ticks() -> None:
    builder = MeasureBuilder()
    builder.append(_note(12), 12)
    assert builder.ticks_used == 12
    assert builder.remaining_capacity() == 36


def test_attach_consumes_no_ticks() -> None:
    builder = MeasureBuilder()
    builder.append(_note(12), 12)
    builder.attach(TempoDirection(bpm=90))
    assert builder.ticks_used == 12
    assert builder.state.entries[-1] == TempoDirection(bpm=90)


def test_close_and_open_next_resets_counter_and_numbers_sequentially() -> None:
    builder = MeasureBuilder()
    builder.append(_note(48), 48)
    builder.close_and_open_next()
    builder.append(_note(48), 48)
    builder.close_and_open_next()

    assert builder.ticks_used == 0
    assert builder.measure_number == 3
    assert [m.number for m in builder.state.measures] == [1, 2]


def test_only_first_measure_carries_attributes() -> None:
    builder = MeasureBuilder()
    builder.append(_note(48), 48)
    builder.close_and_open_next()
    builder.append(_note(48), 48)
    measures = builder.finalize()

    assert measures[0].attributes is not None
    assert measures[0].attributes.divisions == 12
    assert measures[0].attributes.beats == 4
    assert measures[1].attributes is None


def test_finalize_pads_partial_measure_with_one_rest() -> None:
    builder = MeasureBuilder()
    builder.append(_note(18), 18)
    measures = builder.finalize()

    assert len(measures) == 1
    assert measures[0].entries[-1] == RestEntry(duration=30)
    assert measures[0].ticks_used == 48


def test_finalize_does_not_pad_full_measure() -> None:
    builder = MeasureBuilder()
    builder.append(_note(48), 48)
    measures = builder.finalize()

    assert len(measures) == 1
    assert measures[0].entries == (_note(48),)


def test_finalize_discards_empty_shell() -> None:
    builder = MeasureBuilder()
    builder.append(_note(48), 48)
    builder.close_and_open_next()
    measures = builder.finalize()
    assert [m.number for m in measures] == [1]


def test_finalize_on_empty_input_returns_no_measures() -> None:
    assert MeasureBuilder().finalize() == []


def test_finalize_twice_raises() -> None:
    builder = MeasureBuilder()
    builder.finalize()
    with pytest.raises(RuntimeError):
        builder.finalize()


def test_injected_state_is_used() -> None:
    state = EngineState(ticks_used=40, number=7)
    builder = MeasureBuilder(state)
    assert builder.remaining_capacity() == 8
    assert builder.measure_number == 7


def test_closed_measures_are_immutable() -> None:
    builder = MeasureBuilder()
    builder.append(_note(48), 48)
    builder.close_and_open_next()
    measure = builder.state.measures[0]
    assert isinstance(measure.entries, tuple)
    with pytest.raises(AttributeError):
        measure.number = 2  # type: ignore[misc]
