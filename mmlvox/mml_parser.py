"""MMLParser: converts Music Macro Language text into layout events."""

from __future__ import annotations

import re
from typing import Final

from mmlvox.events import BREATH_MARK, Event, Note, Rest, TempoChange

_NUMBER: Final[re.Pattern[str]] = re.compile(r"\d+")
_STEPS: Final[str] = "cdefgab"
_SHARPS: Final[str] = "+#"
_FLAT: Final[str] = "-"

MIN_OCTAVE = 0
MAX_OCTAVE = 9


class MMLSyntaxError(ValueError):
    """Raised when MML text cannot be tokenized."""

    def __init__(self, message: str, offset: int, text: str = "") -> None:
        self.offset = offset
        self.source = text[offset : offset + 12]
        detail = f"{message} at position {offset}"
        if self.source:
            detail += f" (near '{self.source}')"
        super().__init__(detail)


class MMLParser:
    """
    Parse MML into ``Note``/``Rest``/``TempoChange`` events.

    Supported commands (case-insensitive)::

        c d e f g a b   note, then [+ # -] [length] [.] [lyric] [,]
        r               rest, then [length] [.]
        o<n> > <        set octave, octave up, octave down
        l<n>[.]         default length, optionally dotted
        t<n>            tempo in BPM
        ; ...           comment to end of line

    A lyric is either a double-quoted string or a run of non-ASCII
    characters written directly after the note. A trailing ``,`` asks for a
    breath mark after the note.
    """

    DEFAULT_LENGTH = 4
    DEFAULT_OCTAVE = 4
    DEFAULT_LYRIC = "ら"

    def __init__(self, default_lyric: str = DEFAULT_LYRIC) -> None:
        self.default_lyric = default_lyric

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _read_number(self, text: str, pos: int) -> tuple[int | None, int]:
        match = _NUMBER.match(text, pos)
        if not match:
            return None, pos
        return int(match.group()), match.end()

    def _require_number(self, text: str, pos: int, command: str) -> tuple[int, int]:
        value, end = self._read_number(text, pos)
        if value is None:
            raise MMLSyntaxError(f"'{command}' requires a number", pos - 1, text)
        return value, end

    def _read_dot(self, text: str, pos: int) -> tuple[bool, int]:
        if pos < len(text) and text[pos] == ".":
            return True, pos + 1
        return False, pos

    def _read_lyric(self, text: str, pos: int) -> tuple[str | None, int]:
        if pos < len(text) and text[pos] == '"':
            close = text.find('"', pos + 1)
            if close < 0:
                raise MMLSyntaxError("Unterminated lyric", pos, text)
            return text[pos + 1 : close], close + 1

        end = pos
        while end < len(text) and ord(text[end]) > 127 and not text[end].isspace():
            end += 1
        if end == pos:
            return None, pos
        return text[pos:end], end

    def _check_octave(self, octave: int, text: str, pos: int) -> int:
        if not MIN_OCTAVE <= octave <= MAX_OCTAVE:
            raise MMLSyntaxError(
                f"Octave {octave} is outside {MIN_OCTAVE}-{MAX_OCTAVE}", pos, text
            )
        return octave

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, text: str) -> list[Event]:
        """
        Tokenize ``text`` into an ordered event list.

        Raises:
            MMLSyntaxError: On unknown commands or malformed arguments.
        """
        events: list[Event] = []
        octave = self.DEFAULT_OCTAVE
        length = self.DEFAULT_LENGTH
        length_dotted = False
        pos = 0

        while pos < len(text):
            char = text[pos]
            command = char.lower()
            start = pos

            if char.isspace():
                pos += 1
            elif char == ";":
                newline = text.find("\n", pos)
                pos = len(text) if newline < 0 else newline + 1
            elif command in _STEPS:
                pos += 1
                alter = 0
                if pos < len(text) and text[pos] in _SHARPS:
                    alter, pos = 1, pos + 1
                elif pos < len(text) and text[pos] == _FLAT:
                    alter, pos = -1, pos + 1
                note_length, pos = self._read_number(text, pos)
                dotted, pos = self._read_dot(text, pos)
                lyric, pos = self._read_lyric(text, pos)
                if lyric is None:
                    lyric = self.default_lyric
                if pos < len(text) and text[pos] == BREATH_MARK:
                    lyric += BREATH_MARK
                    pos += 1
                events.append(
                    Note(
                        length=length if note_length is None else note_length,
                        dotted=dotted or (note_length is None and length_dotted),
                        step=command.upper(),
                        alter=alter,
                        octave=octave,
                        lyric=lyric,
                        source=text[start:pos],
                        offset=start,
                    )
                )
            elif command == "r":
                rest_length, pos = self._read_number(text, pos + 1)
                dotted, pos = self._read_dot(text, pos)
                events.append(
                    Rest(
                        length=length if rest_length is None else rest_length,
                        dotted=dotted or (rest_length is None and length_dotted),
                        source=text[start:pos],
                        offset=start,
                    )
                )
            elif command == "o":
                value, pos = self._require_number(text, pos + 1, "o")
                octave = self._check_octave(value, text, start)
            elif char == ">":
                octave = self._check_octave(octave + 1, text, start)
                pos += 1
            elif char == "<":
                octave = self._check_octave(octave - 1, text, start)
                pos += 1
            elif command == "l":
                length, pos = self._require_number(text, pos + 1, "l")
                length_dotted, pos = self._read_dot(text, pos)
            elif command == "t":
                bpm, pos = self._require_number(text, pos + 1, "t")
                if bpm <= 0:
                    raise MMLSyntaxError("Tempo must be positive", start, text)
                events.append(TempoChange(bpm=bpm))
            else:
                raise MMLSyntaxError(f"Unexpected character {char!r}", start, text)

        return events


def parse_mml(text: str, default_lyric: str = MMLParser.DEFAULT_LYRIC) -> list[Event]:
    """Parse MML text with a fresh parser."""
    return MMLParser(default_lyric=default_lyric).parse(text)
