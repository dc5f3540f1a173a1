"""NeutrinoSynthesizer: runs the NEUTRINO singing pipeline behind a WAV cache."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

STAGE_LABEL = "musicXMLtoLabel"
STAGE_ACOUSTIC = "NEUTRINO"
STAGE_VOCODER = "WORLD"


def default_threads() -> int:
    """All logical processors but one, and at least one."""
    count = os.cpu_count() or 1
    return count - 1 if count > 1 else count


class SynthesisError(RuntimeError):
    """Raised when a NEUTRINO pipeline stage exits with a non-zero status."""

    def __init__(self, stage: str, returncode: int) -> None:
        self.stage = stage
        self.returncode = returncode
        super().__init__(f"{stage} failed with exit status {returncode}.")


@dataclass
class SynthesisSettings:
    """
    Settings for one NEUTRINO installation and voice.

    Attributes:
        neutrino_dir:  NEUTRINO root holding ``bin/``, ``model/``, ``score/``.
        model:         Voice model directory name under ``model/``.
        pitch_shift:   WORLD ``-f`` pitch shift factor.
        formant_shift: WORLD ``-m`` formant shift factor.
        threads:       Worker threads passed as ``-n``.
        cache_dir:     Directory holding cached ``<key>.wav`` results.
    """

    neutrino_dir: Path
    model: str = "KIRITAN"
    pitch_shift: float = 1.0
    formant_shift: float = 1.0
    threads: int = field(default_factory=default_threads)
    cache_dir: Path = Path("cache")

    def __post_init__(self) -> None:
        self.neutrino_dir = Path(self.neutrino_dir)
        self.cache_dir = Path(self.cache_dir)
        max_threads = os.cpu_count() or 1
        if not 1 <= self.threads <= max_threads:
            raise ValueError(f"threads must be between 1 and {max_threads}, got {self.threads}.")


class NeutrinoSynthesizer:
    """
    Synthesize a MusicXML score to WAV with NEUTRINO.

    Results are cached by the SHA-1 of the MusicXML bytes plus the voice
    settings, so re-rendering an unchanged score only copies the cached file.

    Pipeline (run with ``cwd=neutrino_dir``)::

        musicXMLtoLabel  score -> full/mono labels
        NEUTRINO         full label -> timing label, f0, mgc, bap
        WORLD            f0/mgc/bap -> wav
    """

    def __init__(self, settings: SynthesisSettings) -> None:
        self.settings = settings

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def cache_key(self, musicxml_path: str | Path) -> str:
        """Return ``<sha1>_<model>_<pitch>_<formant>`` for a score file."""
        digest = hashlib.sha1()
        with open(musicxml_path, "rb") as fh:
            for chunk in iter(lambda: fh.read(65536), b""):
                digest.update(chunk)
        s = self.settings
        return f"{digest.hexdigest()}_{s.model}_{s.pitch_shift}_{s.formant_shift}"

    def cache_path(self, key: str) -> Path:
        return self.settings.cache_dir / f"{key}.wav"

    def is_cached(self, key: str) -> bool:
        return self.cache_path(key).is_file()

    def store(self, key: str, wav_path: str | Path) -> Path:
        """Copy a rendered WAV into the cache."""
        self.settings.cache_dir.mkdir(parents=True, exist_ok=True)
        dest = self.cache_path(key)
        shutil.copyfile(wav_path, dest)
        return dest

    def restore(self, key: str, dest: str | Path) -> None:
        """Copy a cached WAV to ``dest``, overwriting it."""
        shutil.copyfile(self.cache_path(key), dest)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def executable(self, stage: str) -> Path:
        suffix = ".exe" if os.name == "nt" else ""
        return self.settings.neutrino_dir / "bin" / f"{stage}{suffix}"

    def _run(self, stage: str, args: list[str]) -> None:
        executable = self.executable(stage)
        if not executable.is_file():
            raise FileNotFoundError(f"NEUTRINO executable not found: {executable}")

        logger.info("running %s", stage)
        result = subprocess.run(
            [str(executable), *args],
            cwd=self.settings.neutrino_dir,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
        for line in (result.stdout or "").splitlines():
            logger.info("%s: %s", stage, line)
        if result.returncode != 0:
            raise SynthesisError(stage, result.returncode)

    def _render(self, musicxml_path: Path, output_path: Path) -> None:
        s = self.settings
        base = musicxml_path.stem
        full_label = Path("score", "label", "full", f"{base}.lab")
        mono_label = Path("score", "label", "mono", f"{base}.lab")
        timing_label = Path("score", "label", "timing", f"{base}.lab")
        f0, mgc, bap = (Path("output", f"{base}.{ext}") for ext in ("f0", "mgc", "bap"))

        for relative in (full_label, mono_label, timing_label, f0):
            (s.neutrino_dir / relative.parent).mkdir(parents=True, exist_ok=True)

        threads = str(s.threads)
        self._run(STAGE_LABEL, [str(musicxml_path), str(full_label), str(mono_label)])
        self._run(
            STAGE_ACOUSTIC,
            [
                str(full_label),
                str(timing_label),
                str(f0),
                str(mgc),
                str(bap),
                str(Path("model", s.model)) + os.sep,
                "-n",
                threads,
                "-t",
            ],
        )
        self._run(
            STAGE_VOCODER,
            [
                str(f0),
                str(mgc),
                str(bap),
                "-f",
                str(s.pitch_shift),
                "-m",
                str(s.formant_shift),
                "-o",
                str(output_path),
                "-n",
                threads,
                "-t",
            ],
        )

    def synthesize(self, musicxml_path: str | Path, output_path: str | Path) -> Path:
        """
        Render ``musicxml_path`` to ``output_path``, using the cache when possible.

        Returns:
            Path of the cached WAV.

        Raises:
            FileNotFoundError: If a NEUTRINO executable is missing.
            SynthesisError: If a pipeline stage fails.
            OSError: If files cannot be read or written.
        """
        source = Path(musicxml_path).resolve()
        output = Path(output_path).resolve()
        key = self.cache_key(source)
        output.parent.mkdir(parents=True, exist_ok=True)

        if self.is_cached(key):
            logger.info("using cached file %s", self.cache_path(key))
            self.restore(key, output)
        else:
            self._render(source, output)
            self.store(key, output)
        return self.cache_path(key)
