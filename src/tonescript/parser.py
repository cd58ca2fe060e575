"""Parse note tokens such as ``1/8c#4`` into a duration and a frequency.

A token reads ``[duration] pitch [accidentals] octave``:

    duration     integer or integer/integer, defaults to 1
    pitch        c d e f g a b, do re mi fa sol la si, or z for silence
    accidentals  one or more ``b`` (flat) or one or more ``#`` (sharp)
    octave       optionally negative integer, required unless silent

Parsing runs as a fixed sequence of stages over the token. Each stage takes
the token and a position, and returns its value together with the position
after it, or raises a ParseError subclass.
"""

import re
from fractions import Fraction
from typing import NamedTuple

from .config import AudioConfig
from .pitches import DEFAULT_PITCHES, PitchTable

# Frequency of C0 in twelve-tone equal temperament (A4 = 440 Hz)
C0 = 16.35159783128741466717

DURATION_PATTERN = re.compile(r"(-?[0-9]+)(?:/(-?[0-9]+))?")
ACCIDENTAL_PATTERN = re.compile(r"b+|#+", re.IGNORECASE)
OCTAVE_PATTERN = re.compile(r"-?[0-9]+")


class ParsedNote(NamedTuple):
    duration: Fraction
    frequency: float

    @property
    def is_silence(self) -> bool:
        return self.frequency == 0


class ParseError(ValueError):
    """Base class for tokens that do not describe a note."""

    def __init__(self, token: str, message: str):
        super().__init__(f"{token!r}: {message}")
        self.token = token
        self.message = message


class EmptyToken(ParseError):
    pass


class InvalidDuration(ParseError):
    pass


class MissingPitch(ParseError):
    pass


class UnknownPitch(ParseError):
    pass


class TrailingGarbage(ParseError):
    pass


class InvalidOctave(ParseError):
    pass


class FrequencyExceedsNyquist(ParseError):
    pass


def note_to_frequency(semitone: int) -> float:
    """Frequency in Hz of the note *semitone* steps above C0.

    Semitones too low for a float underflow to 0.0 Hz. Semitones too high
    raise OverflowError.
    """
    try:
        return C0 * 2.0 ** (semitone / 12.0)
    except OverflowError:
        if semitone < 0:
            return 0.0
        raise


class NoteParser:
    """Turn single tokens into ParsedNote values.

    Args:
        config: Audio constants; max_octave bounds the octave and sample_rate
            sets the Nyquist limit.
        pitches: Pitch-name table to match against.
    """

    def __init__(self, config: AudioConfig | None = None, pitches: PitchTable | None = None):
        self.config = config or AudioConfig()
        self.pitches = pitches or DEFAULT_PITCHES

    def parse(self, token: str) -> ParsedNote:
        """Parse one whitespace-free token.

        Raises:
            ParseError: One of its subclasses, naming the stage that failed.
        """
        if not token:
            raise EmptyToken(token, "empty token")

        duration, pos = self._duration(token, 0)
        if pos == len(token):
            raise MissingPitch(token, "no pitch name after duration")

        found = self.pitches.match(token[pos:])
        if found is None:
            raise UnknownPitch(token, f"unknown pitch name at {token[pos:]!r}")
        name, offset, is_silence = found
        pos += len(name)

        if is_silence:
            if pos != len(token):
                raise TrailingGarbage(token, f"unexpected {token[pos:]!r} after silence")
            return ParsedNote(duration, 0.0)

        accidental, pos = self._accidental(token, pos)
        octave = self._octave(token, pos)

        try:
            frequency = note_to_frequency(offset + 12 * octave + accidental)
        except OverflowError:
            raise InvalidOctave(token, "octave is too high to compute a frequency") from None
        if self.config.enforce_nyquist and frequency > self.config.maxf:
            raise FrequencyExceedsNyquist(
                token, f"{frequency:.2f} Hz is above the Nyquist limit of {self.config.maxf:g} Hz"
            )
        return ParsedNote(duration, frequency)

    def _duration(self, token: str, pos: int) -> tuple[Fraction, int]:
        match = DURATION_PATTERN.match(token, pos)
        if not match:
            return Fraction(1), pos

        try:
            numerator = int(match.group(1))
            denominator = int(match.group(2)) if match.group(2) is not None else 1
        except ValueError:
            raise InvalidDuration(token, "duration has too many digits") from None
        if denominator == 0:
            raise InvalidDuration(token, "zero denominator")

        duration = Fraction(numerator, denominator)
        if duration <= 0:
            raise InvalidDuration(token, f"duration {duration} is not positive")
        return duration, match.end()

    def _accidental(self, token: str, pos: int) -> tuple[int, int]:
        match = ACCIDENTAL_PATTERN.match(token, pos)
        if not match:
            return 0, pos
        run = match.group()
        return (len(run) if run[0] == "#" else -len(run)), match.end()

    def _octave(self, token: str, pos: int) -> int:
        match = OCTAVE_PATTERN.fullmatch(token, pos)
        if not match:
            rest = token[pos:]
            raise InvalidOctave(token, f"expected an octave number, got {rest!r}" if rest else "missing octave")
        try:
            octave = int(match.group())
        except ValueError:
            raise InvalidOctave(token, "octave has too many digits") from None
        if octave > self.config.max_octave:
            raise InvalidOctave(token, f"octave {octave} is above the maximum of {self.config.max_octave}")
        return octave


def parse_note(token: str, config: AudioConfig | None = None) -> ParsedNote:
    """Parse *token* with the default pitch table."""
    return NoteParser(config).parse(token)
