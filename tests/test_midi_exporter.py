"""Unit tests for MidiExporter."""

from typing import Any

import pytest

from mmlvox import midi_exporter
from mmlvox.events import Note, Rest, TempoChange
from mmlvox.layout import layout_events
from mmlvox.midi_exporter import MidiExporter, entry_to_midi
from mmlvox.score_models import NoteEntry


class RecordingMIDIFile:
    instances: list["RecordingMIDIFile"] = []

    def __init__(self, **kwargs: Any) -> None:
        self.tempos: list[tuple[int, float, float]] = []
        self.notes: list[dict[str, Any]] = []
        RecordingMIDIFile.instances.append(self)

    def addTempo(self, track: int, time: float, tempo: float) -> None:
        self.tempos.append((track, time, tempo))

    def addTrackName(self, track: int, time: float, trackName: str) -> None:
        pass

    def addNote(self, **kwargs: Any) -> None:
        self.notes.append(kwargs)

    def writeFile(self, fileHandle: Any) -> None:
        fileHandle.write(b"MThd")


def _note(length: int, step: str = "C") -> Note:
    return Note(length=length, dotted=False, step=step, alter=0, octave=4, lyric="ら")


def _export(monkeypatch: pytest.MonkeyPatch, tmp_path: Any, events: list) -> RecordingMIDIFile:
    RecordingMIDIFile.instances = []
    monkeypatch.setattr(midi_exporter, "MIDIFile", RecordingMIDIFile)
    MidiExporter().export(layout_events(events), str(tmp_path / "out.mid"))
    return RecordingMIDIFile.instances[0]


@pytest.mark.parametrize(
    ("step", "alter", "octave", "expected"),
    [("C", 0, 4, 60), ("A", 0, 4, 69), ("C", 1, 4, 61), ("B", -1, 3, 58)],
)
def test_entry_to_midi(step: str, alter: int, octave: int, expected: int) -> None:
    entry = NoteEntry(step=step, alter=alter, octave=octave, duration=12)
    assert entry_to_midi(entry) == expected


def test_tie_chain_sounds_as_one_note(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    midi = _export(monkeypatch, tmp_path, [_note(2), _note(3), _note(1, step="G")])

    assert len(midi.notes) == 3
    tied = midi.notes[2]
    assert tied["pitch"] == 67
    assert tied["time"] == pytest.approx(40 / 12)
    assert tied["duration"] == pytest.approx(4.0)


def test_rests_advance_time(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    midi = _export(monkeypatch, tmp_path, [Rest(2, False), _note(4)])
    assert midi.notes[0]["time"] == pytest.approx(2.0)
    assert midi.notes[0]["duration"] == pytest.approx(1.0)


def test_default_tempo_when_score_has_none(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    midi = _export(monkeypatch, tmp_path, [_note(4)])
    assert midi.tempos == [(0, 0, MidiExporter.DEFAULT_TEMPO)]


def test_tempo_directions_become_tempo_events(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Any
) -> None:
    midi = _export(
        monkeypatch, tmp_path, [TempoChange(bpm=90), _note(4), TempoChange(bpm=150), _note(4)]
    )
    assert midi.tempos == [(0, 0.0, 90), (0, 1.0, 150)]


def test_real_midi_file_is_written(tmp_path: Any) -> None:
    pytest.importorskip("midiutil")
    out = tmp_path / "song.mid"
    MidiExporter().export(layout_events([TempoChange(bpm=100), _note(1)], title="Song"), str(out))
    assert out.read_bytes().startswith(b"MThd")


@pytest.mark.parametrize(("octave", "step", "alter"), [(9, "G", 1), (9, "A", 0), (9, "B", 0), (-1, "C", -1)])
def test_entry_to_midi_rejects_out_of_range_pitches(octave: int, step: str, alter: int) -> None:
    entry = NoteEntry(step=step, alter=alter, octave=octave, duration=12)
    with pytest.raises(ValueError):
        entry_to_midi(entry)


def test_top_of_midi_range_is_accepted() -> None:
    assert entry_to_midi(NoteEntry(step="G", alter=0, octave=9, duration=12)) == 127


def test_out_of_range_note_writes_no_file(tmp_path: Any) -> None:
    from mmlvox.mml_parser import parse_mml

    out = tmp_path / "high.mid"
    with pytest.raises(ValueError):
        MidiExporter().export(layout_events(parse_mml("o9 b1")), str(out))
    assert not out.exists()
