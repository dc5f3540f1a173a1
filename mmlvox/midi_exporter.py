"""MidiExporter: renders a laid-out ScoreDocument as a 2-track MIDI file."""

from midiutil import MIDIFile

from mmlvox.durations import TICKS_PER_QUARTER
from mmlvox.score_models import NoteEntry, RestEntry, ScoreDocument, TempoDirection, TieRole

# Track 0 is the conductor track (tempo only); the voice goes on track 1.
TRACK_CONDUCTOR = 0
TRACK_VOICE = 1
CHANNEL_VOICE = 0

SEMITONES_PER_OCTAVE = 12
_STEP_SEMITONES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
MAX_MIDI_NOTE = 127
_ACCIDENTALS = {-1: "b", 0: "", 1: "#"}


def entry_to_midi(entry: NoteEntry) -> int:
    """
    Convert a note entry's pitch to an absolute MIDI note number.

    MIDI octave numbering: C-1 = 0, C4 (Middle C) = 60.

    Raises:
        ValueError: If the pitch falls outside MIDI notes 0..127.
    """
    number = (entry.octave + 1) * SEMITONES_PER_OCTAVE + _STEP_SEMITONES[entry.step] + entry.alter
    if not 0 <= number <= MAX_MIDI_NOTE:
        name = f"{entry.step}{_ACCIDENTALS[entry.alter]}{entry.octave}"
        raise ValueError(f"Pitch {name} (MIDI {number}) is outside the MIDI range 0-{MAX_MIDI_NOTE}.")
    return number


class MidiExporter:
    """
    Writes a two-track MIDI file from a score document.

    Tempo directions become tempo events on the conductor track. A tie chain
    sounds as one note from its START fragment to the end of its END
    fragment. Times are converted with ``beats = ticks / TICKS_PER_QUARTER``.
    """

    DEFAULT_TEMPO = 120
    DEFAULT_VELOCITY = 100

    def __init__(self, velocity: int = DEFAULT_VELOCITY) -> None:
        self.velocity = velocity

    def _ticks_to_beats(self, ticks: int) -> float:
        return ticks / TICKS_PER_QUARTER

    def export(self, document: ScoreDocument, output_path: str) -> None:
        """
        Render ``document`` to a Standard MIDI File.

        Raises:
            OSError: If the output file cannot be opened for writing.
            ValueError: If a note lies outside the MIDI pitch range.
        """
        midi = MIDIFile(numTracks=2, removeDuplicates=False, deinterleave=False)
        midi.addTrackName(TRACK_VOICE, 0, document.title or "Voice")

        position = 0
        held_since: int | None = None
        tempo_set = False

        for measure in document.measures:
            for entry in measure.entries:
                if isinstance(entry, TempoDirection):
                    midi.addTempo(TRACK_CONDUCTOR, self._ticks_to_beats(position), entry.bpm)
                    tempo_set = tempo_set or position == 0
                    continue
                if isinstance(entry, RestEntry):
                    position += entry.duration
                    continue

                if entry.tie in (TieRole.NONE, TieRole.START):
                    held_since = position
                position += entry.duration
                if entry.tie in (TieRole.NONE, TieRole.END) and held_since is not None:
                    midi.addNote(
                        track=TRACK_VOICE,
                        channel=CHANNEL_VOICE,
                        pitch=entry_to_midi(entry),
                        time=self._ticks_to_beats(held_since),
                        duration=self._ticks_to_beats(position - held_since),
                        volume=self.velocity,
                    )
                    held_since = None

        if not tempo_set:
            midi.addTempo(TRACK_CONDUCTOR, 0, self.DEFAULT_TEMPO)

        with open(output_path, "wb") as f:
            midi.writeFile(f)
