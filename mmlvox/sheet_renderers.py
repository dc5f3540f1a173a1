"""Score previews: engraved HTML through verovio and a plain-text measure table."""

from __future__ import annotations

import html
from abc import ABC, abstractmethod
from typing import Any, Final

from mmlvox.musicxml_writer import MusicXMLWriter
from mmlvox.score_models import NoteEntry, RestEntry, ScoreDocument, TempoDirection, TieRole

_ACCIDENTALS = {-1: "b", 0: "", 1: "#"}


def first_tempo(document: ScoreDocument) -> int | None:
    """Return the BPM of the first tempo direction, if the score has one."""
    for measure in document.measures:
        for entry in measure.entries:
            if isinstance(entry, TempoDirection):
                return entry.bpm
    return None


class ScorePreview(ABC):
    """A preview of a laid-out score, rendered to a file content string."""

    extension: str = ""

    @abstractmethod
    def render(self, document: ScoreDocument) -> str:
        """Render ``document``."""


class VerovioHtmlRenderer(ScorePreview):
    """
    Engrave a score with verovio and wrap the SVG pages in one HTML file.

    The document goes through ``MusicXMLWriter`` first, so the preview shows
    exactly the MusicXML that NEUTRINO would receive, ties and lyrics included.
    """

    extension = ".html"

    # verovio units are tenths of a millimetre; a single voice with lyrics
    # reads best slightly enlarged on an A4 width with no page footer.
    OPTIONS: Final[dict[str, Any]] = {
        "pageWidth": 2100,
        "pageHeight": 2970,
        "adjustPageHeight": True,
        "pageMarginLeft": 80,
        "pageMarginRight": 80,
        "pageMarginTop": 60,
        "pageMarginBottom": 60,
        "scale": 50,
        "lyricSize": 5.0,
        "footer": "none",
    }

    def __init__(self, writer: MusicXMLWriter | None = None) -> None:
        self.writer = writer if writer is not None else MusicXMLWriter()

    def render_svgs(self, musicxml: bytes) -> list[str]:
        """
        Engrave MusicXML into one SVG string per page.

        Raises:
            ValueError: If verovio rejects the MusicXML.
        """
        import verovio

        tk = verovio.toolkit()
        tk.setOptions(self.OPTIONS)
        if not tk.loadData(musicxml.decode("utf-8")):
            raise ValueError("verovio could not load the MusicXML data.")
        return [tk.renderToSVG(page_no) for page_no in range(1, tk.getPageCount() + 1)]

    def render(self, document: ScoreDocument) -> str:
        """
        Render ``document`` as a standalone HTML page.

        Raises:
            ValueError: If verovio rejects the MusicXML.
        """
        svgs = self.render_svgs(self.writer.to_bytes(document))
        return self.build_page(document, svgs)

    def build_page(self, document: ScoreDocument, svgs: list[str]) -> str:
        title = html.escape(document.title)
        summary = f"{len(document.measures)} measures"
        tempo = first_tempo(document)
        if tempo is not None:
            summary += f" · ♩ = {tempo}"
        heading = f"<h1>{title}</h1>\n" if document.title else ""
        pages = "\n".join(f'<section class="page">{svg}</section>' for svg in svgs)

        return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8" />
<title>{title or "mmlvox preview"}</title>
<style>
  body {{ margin: 1.5rem auto; max-width: 900px; font-family: sans-serif; }}
  .summary {{ color: #666; }}
  .page svg {{ width: 100%; height: auto; }}
</style>
</head>
<body>
{heading}<p class="summary">{summary}</p>
{pages}
</body>
</html>
"""


class MeasureTableRenderer(ScorePreview):
    """Render a score as plain text: ``number | ticks | entries`` per measure."""

    extension = ".txt"

    def render(self, document: ScoreDocument) -> str:
        lines = [f"# {document.title}"] if document.title else []
        for measure in document.measures:
            cells = " ".join(self._format_entry(entry) for entry in measure.entries)
            lines.append(f"{measure.number:>4} | {measure.ticks_used:>2} | {cells}")
        return "\n".join(lines) + "\n"

    def _format_entry(self, entry: NoteEntry | RestEntry | TempoDirection) -> str:
        if isinstance(entry, TempoDirection):
            return f"♩={entry.bpm}"
        if isinstance(entry, RestEntry):
            return f"r:{entry.duration}"

        text = f"{entry.step}{_ACCIDENTALS[entry.alter]}{entry.octave}:{entry.duration}"
        if entry.tie is not TieRole.NONE:
            text += f"[{entry.tie.value}]"
        if entry.lyric is not None:
            text += f' "{entry.lyric}"'
        if entry.breath:
            text += " ,"
        return text
