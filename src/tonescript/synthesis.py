"""Sine-oscillator synthesis of parsed notes into 16-bit stereo PCM."""

import math
from collections.abc import Iterable, Iterator

import numpy as np

from .parser import ParsedNote

INT16_MIN = -32768
INT16_MAX = 32767

# Interleaved little-endian signed 16-bit
PCM_DTYPE = np.dtype("<i2")

# Frames rendered at once; long notes are split into blocks of this size
BLOCK_FRAMES = 65536


class SampleOutOfRange(OverflowError):
    """A sample value does not fit in a signed 16-bit integer."""


def note_sample_count(note: ParsedNote, sample_rate: int) -> int:
    """Number of stereo frames a note occupies: floor(sample_rate * duration)."""
    return math.floor(sample_rate * note.duration)


def check_amplitude(amp: float) -> None:
    """Raise SampleOutOfRange if a full-scale sine at *amp* cannot be encoded."""
    if round(abs(amp)) > INT16_MAX:
        raise SampleOutOfRange(f"Amplitude {amp:g} exceeds 16-bit PCM (max {INT16_MAX})")


def render_note(
    note: ParsedNote,
    sample_rate: int,
    amp: float,
    start: int = 0,
    count: int | None = None,
) -> np.ndarray:
    """Render a note as an (n, 2) int16 array, left and right identical.

    By default the whole note is rendered. *start* and *count* select the
    frames [start, start + count) of the note, with the oscillator phase
    continuing from frame 0.

    Raises:
        SampleOutOfRange: If *amp* pushes any sample outside the int16 range.
    """
    stop = note_sample_count(note, sample_rate)
    if count is not None:
        stop = min(stop, start + count)
    start = min(start, stop)
    if note.frequency == 0 or start == stop:
        return np.zeros((stop - start, 2), dtype=np.int16)

    i = np.arange(start, stop, dtype=np.float64)
    samples = np.rint(amp * np.sin(2 * np.pi * note.frequency * i / sample_rate))

    lo, hi = samples.min(), samples.max()
    if lo < INT16_MIN or hi > INT16_MAX:
        raise SampleOutOfRange(
            f"Sample range [{lo:.0f}, {hi:.0f}] exceeds 16-bit PCM at amplitude {amp:g}"
        )

    mono = samples.astype(np.int16)
    return np.column_stack((mono, mono))


def samples_to_bytes(frames: np.ndarray) -> bytes:
    """Convert an (n, 2) frame array to raw interleaved s16le PCM bytes."""
    return np.ascontiguousarray(frames, dtype=PCM_DTYPE).tobytes()


class ToneStream:
    """Lazy, restartable sequence of stereo frames for a run of notes.

    Nothing is rendered until iteration, and every iteration renders again
    from the stored notes, so the stream can be consumed any number of times.
    At most *block_size* frames are held in memory at once.
    """

    def __init__(
        self,
        notes: Iterable[ParsedNote],
        sample_rate: int,
        amp: float,
        block_size: int = BLOCK_FRAMES,
    ):
        if block_size <= 0:
            raise ValueError(f"block_size must be positive, got {block_size}")
        self.notes = tuple(notes)
        self.sample_rate = sample_rate
        self.amp = amp
        self.block_size = block_size

    def frame_count(self) -> int:
        return sum(note_sample_count(note, self.sample_rate) for note in self.notes)

    def __len__(self) -> int:
        return self.frame_count()

    def __iter__(self) -> Iterator[tuple[int, int]]:
        for frames in self.chunks():
            for left, right in frames.tolist():
                yield left, right

    def chunks(self) -> Iterator[np.ndarray]:
        """Yield (n, 2) int16 arrays of at most block_size frames, in note order.

        A note shorter than a block is one chunk; longer notes are split.
        """
        for note in self.notes:
            n_samples = note_sample_count(note, self.sample_rate)
            for start in range(0, n_samples, self.block_size):
                yield render_note(note, self.sample_rate, self.amp, start, self.block_size)

    def iter_bytes(self) -> Iterator[bytes]:
        """Yield the PCM encoding of each chunk, in order."""
        for frames in self.chunks():
            yield samples_to_bytes(frames)

    def duration_seconds(self) -> float:
        return self.frame_count() / self.sample_rate


def synthesize(notes: Iterable[ParsedNote], sample_rate: int, amp: float) -> ToneStream:
    """Build the sample stream for *notes*.

    Args:
        notes: Parsed notes, played in order
        sample_rate: Sample rate in Hz
        amp: Peak amplitude, at most 32767 for full-scale output

    Returns:
        A ToneStream yielding (left, right) int samples
    """
    return ToneStream(notes, sample_rate, amp)
