"""mmlvox CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from mmlvox import __version__
from mmlvox.durations import InvalidLengthError
from mmlvox.layout import layout_events
from mmlvox.mml_parser import MMLParser
from mmlvox.musicxml_writer import MusicXMLWriter
from mmlvox.score_models import ScoreDocument


def _default_output(mml_file: str, suffix: str) -> str:
    return str(Path(mml_file).with_suffix(suffix))


def _default_title(mml_file: str) -> str:
    return Path(mml_file).stem.replace("_", " ")


def _fail(message: str) -> NoReturn:
    click.echo(f"  ERROR: {message}", err=True)
    sys.exit(1)


def _load_document(mml_file: str, title: str, lyric: str) -> ScoreDocument:
    """Read, parse and lay out an MML file, exiting with status 1 on bad input."""
    try:
        text = Path(mml_file).read_text(encoding="utf-8")
    except OSError as exc:
        _fail(f"Could not read MML file — {exc}")
    except UnicodeDecodeError as exc:
        _fail(f"MML file is not UTF-8 — {exc}")

    try:
        events = MMLParser(default_lyric=lyric).parse(text)
        return layout_events(events, title=title)
    except InvalidLengthError as exc:
        _fail(f"Invalid note length — {exc}")
    except ValueError as exc:
        _fail(f"Could not parse MML — {exc}")


_input_argument = click.argument(
    "mml_file", type=click.Path(exists=True, dir_okay=False, readable=True)
)
_title_option = click.option(
    "--title",
    default=None,
    metavar="TEXT",
    help="Score title. Defaults to the MML filename stem.",
)
_lyric_option = click.option(
    "--default-lyric",
    default=MMLParser.DEFAULT_LYRIC,
    show_default=True,
    metavar="TEXT",
    help="Lyric sung on notes written without one.",
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="mmlvox")
@click.option("-v", "--verbose", is_flag=True, help="Log layout and synthesis details.")
def main(verbose: bool) -> None:
    """mmlvox — MML to MusicXML for the NEUTRINO singing synthesizer."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


# ── score subcommand ───────────────────────────────────────────────────────────

@main.command()
@_input_argument
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MusicXML path. Defaults to <input>.musicxml.",
)
@_title_option
@_lyric_option
def score(mml_file: str, output: str | None, title: str | None, default_lyric: str) -> None:
    """
    Lay out an MML file as MusicXML.

    \b
    Examples:
      mmlvox score song.mml
      mmlvox score song.mml -o song.musicxml --title "My Song"
    """
    resolved_output = output if output is not None else _default_output(mml_file, ".musicxml")
    resolved_title = title if title is not None else _default_title(mml_file)

    click.echo(f"[1/2] Laying out '{mml_file}'...")
    document = _load_document(mml_file, resolved_title, default_lyric)
    click.echo(f"      Measures : {len(document.measures)}")

    click.echo(f"[2/2] Writing MusicXML → '{resolved_output}'...")
    try:
        MusicXMLWriter().write(document, resolved_output)
    except OSError as exc:
        _fail(f"Could not write MusicXML file — {exc}")
    click.echo("Done!")


# ── inspect subcommand ─────────────────────────────────────────────────────────

@main.command()
@_input_argument
@_lyric_option
def inspect(mml_file: str, default_lyric: str) -> None:
    """Print the measure layout of an MML file (number | ticks | entries)."""
    from mmlvox.sheet_renderers import MeasureTableRenderer

    document = _load_document(mml_file, "", default_lyric)
    click.echo(MeasureTableRenderer().render(document), nl=False)


# ── preview subcommand ─────────────────────────────────────────────────────────

@main.command()
@_input_argument
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination HTML path. Defaults to <input>.html.",
)
@_title_option
@_lyric_option
def preview(mml_file: str, output: str | None, title: str | None, default_lyric: str) -> None:
    """
    Render an MML file as a self-contained HTML score (verovio).

    \b
    Examples:
      mmlvox preview song.mml
      mmlvox preview song.mml -o score.html --title "My Song"
    """
    from mmlvox.sheet_renderers import VerovioHtmlRenderer

    resolved_output = output if output is not None else _default_output(mml_file, ".html")
    resolved_title = title if title is not None else _default_title(mml_file)

    click.echo(f"[1/3] Laying out '{mml_file}'...")
    document = _load_document(mml_file, resolved_title, default_lyric)
    click.echo("[2/3] Rendering notation to SVG with verovio...")
    try:
        content = VerovioHtmlRenderer().render(document)
    except ValueError as exc:
        _fail(f"Could not render score — {exc}")

    click.echo(f"[3/3] Writing HTML file → '{resolved_output}'...")
    try:
        with open(resolved_output, "w", encoding="utf-8") as fh:
            fh.write(content)
    except OSError as exc:
        _fail(f"Could not write output file — {exc}")
    click.echo(f"Done!  Open '{resolved_output}' in any browser.")


# ── midi subcommand ────────────────────────────────────────────────────────────

@main.command()
@_input_argument
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI path. Defaults to <input>.mid.",
)
@_lyric_option
def midi(mml_file: str, output: str | None, default_lyric: str) -> None:
    """Export an MML file as MIDI for quick listening."""
    from mmlvox.midi_exporter import MidiExporter

    resolved_output = output if output is not None else _default_output(mml_file, ".mid")
    document = _load_document(mml_file, _default_title(mml_file), default_lyric)

    click.echo(f"Writing MIDI file → '{resolved_output}'...")
    try:
        MidiExporter().export(document, resolved_output)
    except OSError as exc:
        _fail(f"Could not write MIDI file — {exc}")
    except ValueError as exc:
        _fail(f"Could not export MIDI — {exc}")
    click.echo("Done!")


# ── sing subcommand ────────────────────────────────────────────────────────────

@main.command()
@_input_argument
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination WAV path. Defaults to <input>.wav.",
)
@click.option(
    "--neutrino-dir",
    envvar="NEUTRINO_DIR",
    required=True,
    type=click.Path(exists=True, file_okay=False),
    help="NEUTRINO installation directory (or set NEUTRINO_DIR).",
)
@click.option("--model", default="KIRITAN", show_default=True, help="Voice model name.")
@click.option("--pitch-shift", type=float, default=1.0, show_default=True, help="WORLD pitch shift.")
@click.option(
    "--formant-shift", type=float, default=1.0, show_default=True, help="WORLD formant shift."
)
@click.option(
    "--threads",
    type=click.IntRange(min=1),
    default=None,
    help="Worker threads. Defaults to logical processors minus one.",
)
@click.option(
    "--cache-dir",
    default="cache",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory for cached WAV results.",
)
@_title_option
@_lyric_option
def sing(
    mml_file: str,
    output: str | None,
    neutrino_dir: str,
    model: str,
    pitch_shift: float,
    formant_shift: float,
    threads: int | None,
    cache_dir: str,
    title: str | None,
    default_lyric: str,
) -> None:
    """
    Sing an MML file with NEUTRINO and write a WAV file.

    \b
    Examples:
      mmlvox sing song.mml --neutrino-dir ~/NEUTRINO
      mmlvox sing song.mml -o song.wav --model KIRITAN --pitch-shift 1.2
    """
    from mmlvox.synthesis import (
        NeutrinoSynthesizer,
        SynthesisError,
        SynthesisSettings,
        default_threads,
    )

    resolved_output = output if output is not None else _default_output(mml_file, ".wav")
    resolved_title = title if title is not None else _default_title(mml_file)
    musicxml_path = _default_output(mml_file, ".musicxml")

    try:
        settings = SynthesisSettings(
            neutrino_dir=Path(neutrino_dir),
            model=model,
            pitch_shift=pitch_shift,
            formant_shift=formant_shift,
            cache_dir=Path(cache_dir),
            threads=threads if threads is not None else default_threads(),
        )
    except ValueError as exc:
        _fail(str(exc))

    click.echo(f"mmlvox v{__version__}")
    click.echo(f"  MML    : {mml_file}")
    click.echo(f"  Model  : {model}  |  Threads: {settings.threads}")
    click.echo()

    click.echo(f"[1/3] Laying out '{mml_file}'...")
    document = _load_document(mml_file, resolved_title, default_lyric)

    click.echo(f"[2/3] Writing MusicXML → '{musicxml_path}'...")
    try:
        MusicXMLWriter().write(document, musicxml_path)
    except OSError as exc:
        _fail(f"Could not write MusicXML file — {exc}")

    click.echo("[3/3] Synthesizing with NEUTRINO...")
    try:
        cached = NeutrinoSynthesizer(settings).synthesize(musicxml_path, resolved_output)
    except (OSError, SynthesisError) as exc:
        _fail(f"Synthesis failed — {exc}")

    click.echo()
    click.echo(f"Done!  Wrote '{resolved_output}' (cached as '{cached.name}').")
