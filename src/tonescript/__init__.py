"""tonescript - Melody notation to raw PCM tones."""

from .config import AudioConfig, ConfigError, load_audio_config
from .parser import (
    C0,
    EmptyToken,
    FrequencyExceedsNyquist,
    InvalidDuration,
    InvalidOctave,
    MissingPitch,
    NoteParser,
    ParsedNote,
    ParseError,
    TrailingGarbage,
    UnknownPitch,
    note_to_frequency,
    parse_note,
)
from .pitches import DEFAULT_PITCHES, NOTE_SEMITONES, PitchTable
from .pipeline import render, tokenize
from .synthesis import SampleOutOfRange, ToneStream, check_amplitude, render_note, samples_to_bytes, synthesize

__version__ = "0.1.0"
__all__ = [
    "AudioConfig",
    "ConfigError",
    "load_audio_config",
    "C0",
    "NoteParser",
    "ParsedNote",
    "ParseError",
    "EmptyToken",
    "InvalidDuration",
    "MissingPitch",
    "UnknownPitch",
    "TrailingGarbage",
    "InvalidOctave",
    "FrequencyExceedsNyquist",
    "note_to_frequency",
    "parse_note",
    "PitchTable",
    "DEFAULT_PITCHES",
    "NOTE_SEMITONES",
    "render",
    "tokenize",
    "SampleOutOfRange",
    "ToneStream",
    "check_amplitude",
    "render_note",
    "samples_to_bytes",
    "synthesize",
]
