"""Unit tests for MMLParser."""

import pytest

from mmlvox.events import Note, Rest, TempoChange
from mmlvox.mml_parser import MMLParser, MMLSyntaxError, parse_mml


def _notes(text: str) -> list[Note]:
    return [e for e in parse_mml(text) if isinstance(e, Note)]


def test_plain_notes_use_defaults() -> None:
    notes = _notes("cdefgab")
    assert [n.step for n in notes] == ["C", "D", "E", "F", "G", "A", "B"]
    assert {n.length for n in notes} == {4}
    assert {n.octave for n in notes} == {4}
    assert {n.lyric for n in notes} == {"ら"}


def test_uppercase_commands() -> None:
    (note,) = _notes("C8")
    assert note.step == "C"
    assert note.length == 8


def test_accidentals() -> None:
    assert [n.alter for n in _notes("c+ c# d- e")] == [1, 1, -1, 0]


def test_length_and_dot() -> None:
    (note,) = _notes("g2.")
    assert note.length == 2
    assert note.dotted is True


def test_default_length_command() -> None:
    events = parse_mml("l8 c r")
    assert events[0].length == 8
    assert events[1] == Rest(length=8, dotted=False, source="r", offset=5)


def test_rest_with_length_and_dot() -> None:
    (rest,) = parse_mml("r2.")
    assert rest == Rest(length=2, dotted=True, source="r2.", offset=0)


def test_octave_commands() -> None:
    assert [n.octave for n in _notes("o5c >c <<c")] == [5, 6, 4]


def test_tempo_command() -> None:
    assert parse_mml("t120") == [TempoChange(bpm=120)]


def test_kana_lyric() -> None:
    assert [n.lyric for n in _notes("cど dれ")] == ["ど", "れ"]


def test_quoted_lyric() -> None:
    (note,) = _notes('c4"la"')
    assert note.lyric == "la"


def test_breath_marker_is_appended_to_lyric() -> None:
    assert [n.lyric for n in _notes('cあ, d"la", e,')] == ["あ,", "la,", "ら,"]


def test_custom_default_lyric() -> None:
    (note,) = MMLParser(default_lyric="a").parse("c")
    assert note.lyric == "a"


def test_source_fragment_and_offset() -> None:
    notes = _notes("o4 c8あ d")
    assert notes[0].source == "c8あ"
    assert notes[0].offset == 3
    assert notes[1].source == "d"


def test_comments_and_whitespace_are_ignored() -> None:
    assert [n.step for n in _notes("c ; d e f\n g\n")] == ["C", "G"]


def test_unsupported_length_is_left_to_the_resolver() -> None:
    (note,) = _notes("c5")
    assert note.length == 5


@pytest.mark.parametrize(
    "text",
    ["x", "c4 ?", "o", "l", "t", "t0", 'c"la', "o10", ">>>>>>", "o0<"],
)
def test_syntax_errors(text: str) -> None:
    with pytest.raises(MMLSyntaxError):
        parse_mml(text)


def test_syntax_error_reports_position() -> None:
    with pytest.raises(MMLSyntaxError) as excinfo:
        parse_mml("cde x")
    assert excinfo.value.offset == 4
    assert "position 4" in str(excinfo.value)


def test_syntax_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_mml("q")


def test_dotted_default_length() -> None:
    events = parse_mml("l8. c d4 r e. l4 f")
    assert [(e.length, e.dotted) for e in events] == [(8, True), (4, False), (8, True), (8, True), (4, False)]
