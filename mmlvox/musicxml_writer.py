"""MusicXMLWriter: serializes a ScoreDocument into MusicXML partwise bytes."""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Final
from xml.etree import ElementTree

from mmlvox.score_models import (
    Measure,
    MeasureAttributes,
    NoteEntry,
    RestEntry,
    ScoreDocument,
    TempoDirection,
)

_HEADER: Final[bytes] = (
    b'<?xml version="1.0" encoding="UTF-8" standalone="no"?>\n'
    b'<!DOCTYPE score-partwise PUBLIC "-//Recordare//DTD MusicXML 3.1 Partwise//EN" '
    b'"http://www.musicxml.org/dtds/partwise.dtd">\n'
)


def load_template() -> bytes:
    """Return the packaged base score template."""
    return resources.files("mmlvox").joinpath("template.xml").read_bytes()


def _text_element(parent: ElementTree.Element, tag: str, value: object) -> ElementTree.Element:
    element = ElementTree.SubElement(parent, tag)
    element.text = str(value)
    return element


class MusicXMLWriter:
    """
    Write score documents as MusicXML.

    Measures are appended to the last ``<part>`` of the base template, which
    by default is the packaged single-voice template.
    """

    def __init__(self, template: bytes | str | None = None) -> None:
        self.template = template if template is not None else load_template()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _attributes_element(self, attributes: MeasureAttributes) -> ElementTree.Element:
        element = ElementTree.Element("attributes")
        _text_element(element, "divisions", attributes.divisions)
        key = ElementTree.SubElement(element, "key")
        _text_element(key, "fifths", attributes.fifths)
        time = ElementTree.SubElement(element, "time")
        _text_element(time, "beats", attributes.beats)
        _text_element(time, "beat-type", attributes.beat_type)
        clef = ElementTree.SubElement(element, "clef")
        _text_element(clef, "sign", attributes.clef_sign)
        _text_element(clef, "line", attributes.clef_line)
        return element

    def _note_element(self, entry: NoteEntry) -> ElementTree.Element:
        note = ElementTree.Element("note")
        pitch = ElementTree.SubElement(note, "pitch")
        _text_element(pitch, "step", entry.step)
        if entry.alter:
            _text_element(pitch, "alter", entry.alter)
        _text_element(pitch, "octave", entry.octave)
        _text_element(note, "duration", entry.duration)

        tie_types = entry.tie.tie_types
        for tie_type in tie_types:
            ElementTree.SubElement(note, "tie", {"type": tie_type})

        if tie_types or entry.breath:
            notations = ElementTree.SubElement(note, "notations")
            for tie_type in tie_types:
                ElementTree.SubElement(notations, "tied", {"type": tie_type})
            if entry.breath:
                articulations = ElementTree.SubElement(notations, "articulations")
                ElementTree.SubElement(articulations, "breath-mark")

        if entry.lyric is not None:
            lyric = ElementTree.SubElement(note, "lyric")
            _text_element(lyric, "text", entry.lyric)
        return note

    def _rest_element(self, entry: RestEntry) -> ElementTree.Element:
        note = ElementTree.Element("note")
        ElementTree.SubElement(note, "rest")
        _text_element(note, "duration", entry.duration)
        return note

    def _tempo_element(self, entry: TempoDirection) -> ElementTree.Element:
        direction = ElementTree.Element("direction")
        direction_type = ElementTree.SubElement(direction, "direction-type")
        metronome = ElementTree.SubElement(direction_type, "metronome")
        _text_element(metronome, "beat-unit", "quarter")
        _text_element(metronome, "per-minute", entry.bpm)
        ElementTree.SubElement(direction, "sound", {"tempo": str(entry.bpm)})
        return direction

    def _measure_element(self, measure: Measure) -> ElementTree.Element:
        element = ElementTree.Element("measure", {"number": str(measure.number)})
        if measure.attributes is not None:
            element.append(self._attributes_element(measure.attributes))
        for entry in measure.entries:
            if isinstance(entry, NoteEntry):
                element.append(self._note_element(entry))
            elif isinstance(entry, RestEntry):
                element.append(self._rest_element(entry))
            else:
                element.append(self._tempo_element(entry))
        return element

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, document: ScoreDocument) -> ElementTree.Element:
        """Return the ``<score-partwise>`` root for ``document``."""
        root = ElementTree.fromstring(self.template)
        parts = root.findall("part")
        if not parts:
            raise ValueError("The score template has no <part> element.")

        if document.title:
            title = ElementTree.Element("movement-title")
            title.text = document.title
            root.insert(0, title)

        part = parts[-1]
        for measure in document.measures:
            part.append(self._measure_element(measure))
        return root

    def to_bytes(self, document: ScoreDocument) -> bytes:
        """Serialize ``document``; identical documents give identical bytes."""
        root = self.build(document)
        ElementTree.indent(root, space="  ")
        return _HEADER + ElementTree.tostring(root, encoding="utf-8", xml_declaration=False) + b"\n"

    def write(self, document: ScoreDocument, output_path: str | Path) -> None:
        """
        Write ``document`` to ``output_path``.

        Raises:
            OSError: If the output file cannot be written.
        """
        with open(output_path, "wb") as fh:
            fh.write(self.to_bytes(document))
