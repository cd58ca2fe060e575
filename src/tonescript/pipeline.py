"""Read notation lines, parse their tokens, and write the rendered PCM."""

import logging
from collections.abc import Iterable, Iterator
from typing import BinaryIO, NamedTuple

from .config import AudioConfig
from .parser import NoteParser, ParsedNote, ParseError
from .synthesis import ToneStream, check_amplitude, samples_to_bytes, synthesize

log = logging.getLogger(__name__)

BAR = "|"
COMMENT = "%"


class RenderStats(NamedTuple):
    notes: int
    skipped: int
    frames: int


def tokenize(line: str) -> list[str]:
    """Split a notation line into tokens; bar separators count as whitespace.

    Example: "c4 e4 | g4" -> ["c4", "e4", "g4"]
    """
    if line.lstrip().startswith(COMMENT):
        return []
    return line.replace(BAR, " ").split()


def iter_parsed(
    lines: Iterable[str], parser: NoteParser
) -> Iterator[tuple[int, str, ParsedNote | ParseError]]:
    """Yield (line_number, token, note_or_error) for every token in *lines*."""
    for lineno, line in enumerate(lines, start=1):
        for token in tokenize(line):
            try:
                yield lineno, token, parser.parse(token)
            except ParseError as e:
                yield lineno, token, e


def parse_lines(lines: Iterable[str], parser: NoteParser, skipped: list | None = None) -> Iterator[ParsedNote]:
    """Yield the notes in *lines*, logging and dropping tokens that fail to parse.

    Failed tokens are appended to *skipped* as (line_number, error) if given.
    """
    for lineno, token, result in iter_parsed(lines, parser):
        if isinstance(result, ParseError):
            log.warning("line %d: skipping %s", lineno, result)
            if skipped is not None:
                skipped.append((lineno, result))
            continue
        log.debug("line %d: %s -> %s beats at %.3f Hz", lineno, token, result.duration, result.frequency)
        yield result


def build_stream(lines: Iterable[str], config: AudioConfig, parser: NoteParser | None = None) -> tuple[ToneStream, int]:
    """Parse *lines* and return (stream, skipped_token_count)."""
    parser = parser or NoteParser(config)
    skipped: list = []
    notes = list(parse_lines(lines, parser, skipped))
    return synthesize(notes, config.sample_rate, config.amp), len(skipped)


def write_stream(stream: ToneStream, out: BinaryIO) -> int:
    """Write *stream* to *out* chunk by chunk; returns the number of frames written."""
    frames = 0
    for chunk in stream.chunks():
        out.write(samples_to_bytes(chunk))
        frames += len(chunk)
    return frames


def render(lines: Iterable[str], out: BinaryIO, config: AudioConfig, parser: NoteParser | None = None) -> RenderStats:
    """Render notation *lines* as raw s16le stereo PCM into *out*.

    Raises:
        SampleOutOfRange: If the configured amplitude cannot be encoded; raised
            before anything is written.
    """
    check_amplitude(config.amp)
    stream, skipped = build_stream(lines, config, parser)
    frames = write_stream(stream, out)
    out.flush()
    log.info("Rendered %d notes (%d skipped), %d frames", len(stream.notes), skipped, frames)
    return RenderStats(len(stream.notes), skipped, frames)
