"""mmlvox: MML to MusicXML score layout for the NEUTRINO singing synthesizer."""

__version__ = "0.1.0"
