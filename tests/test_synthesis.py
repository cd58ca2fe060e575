#!/usr/bin/env python3
"""Unit tests for synthesis.py - sine oscillator PCM generation."""

import math
import struct
from fractions import Fraction

import numpy as np
import pytest

from tonescript.parser import ParsedNote
from tonescript.synthesis import (
    BLOCK_FRAMES,
    SampleOutOfRange,
    ToneStream,
    check_amplitude,
    note_sample_count,
    render_note,
    samples_to_bytes,
    synthesize,
)

RATE = 8000
AMP = 32767 * 0.5


class TestNoteSampleCount:
    """Tests for note_sample_count function."""

    def test_whole_duration(self):
        """Test one unit is sample_rate frames."""
        assert note_sample_count(ParsedNote(Fraction(1), 440.0), RATE) == RATE

    def test_floor(self):
        """Test fractional sample counts are floored."""
        assert note_sample_count(ParsedNote(Fraction(1, 3), 440.0), RATE) == 2666

    def test_exact_rational(self):
        """Test exact rationals avoid float rounding."""
        assert note_sample_count(ParsedNote(Fraction(1, 8), 440.0), 44100) == 5512


class TestRenderNote:
    """Tests for render_note function."""

    def test_shape_and_dtype(self):
        """Test output is (n, 2) int16."""
        frames = render_note(ParsedNote(Fraction(1, 4), 440.0), RATE, AMP)
        assert frames.shape == (2000, 2)
        assert frames.dtype == np.int16

    def test_channels_identical(self):
        """Test left and right channels are duplicated."""
        frames = render_note(ParsedNote(Fraction(1, 4), 523.25), RATE, AMP)
        np.testing.assert_array_equal(frames[:, 0], frames[:, 1])

    def test_waveform(self):
        """Test samples follow round(amp * sin(2 pi f i / r))."""
        freq = 440.0
        frames = render_note(ParsedNote(Fraction(1, 10), freq), RATE, AMP)
        expected = [round(AMP * math.sin(2 * math.pi * freq * i / RATE)) for i in range(len(frames))]
        np.testing.assert_array_equal(frames[:, 0], expected)

    def test_first_sample_zero(self):
        """Test the oscillator starts at phase zero."""
        frames = render_note(ParsedNote(Fraction(1, 10), 440.0), RATE, AMP)
        assert frames[0, 0] == 0

    def test_peak_amplitude(self):
        """Test the peak does not exceed amp."""
        frames = render_note(ParsedNote(Fraction(1), 441.0), RATE, AMP)
        assert np.abs(frames).max() <= round(AMP)

    def test_silence_is_zero(self):
        """Test a silent note still occupies its samples, all zero."""
        frames = render_note(ParsedNote(Fraction(1, 2), 0.0), RATE, AMP)
        assert frames.shape == (4000, 2)
        assert not frames.any()

    def test_too_short_for_a_sample(self):
        """Test very short notes render nothing."""
        frames = render_note(ParsedNote(Fraction(1, 100000), 440.0), RATE, AMP)
        assert frames.shape == (0, 2)

    def test_full_scale(self):
        """Test amp = 32767 fits."""
        frames = render_note(ParsedNote(Fraction(1), 2000.0), RATE, 32767)
        assert frames.max() == 32767
        assert frames.min() == -32767

    def test_overflow_raises(self):
        """Test an amplitude above the int16 range is an error, not wraparound."""
        with pytest.raises(SampleOutOfRange):
            render_note(ParsedNote(Fraction(1), 2000.0), RATE, 32767 * 1.5)

    def test_overflow_is_overflow_error(self):
        """Test SampleOutOfRange is an OverflowError."""
        assert issubclass(SampleOutOfRange, OverflowError)


class TestSamplesToBytes:
    """Tests for samples_to_bytes function."""

    def test_little_endian_interleaved(self):
        """Test frames are encoded as interleaved s16le."""
        frames = np.array([[1, -1], [256, -32768]], dtype=np.int16)
        assert samples_to_bytes(frames) == b"\x01\x00\xff\xff\x00\x01\x00\x80"

    def test_length(self):
        """Test each frame is four bytes."""
        frames = render_note(ParsedNote(Fraction(1, 8), 440.0), RATE, AMP)
        assert len(samples_to_bytes(frames)) == 1000 * 4

    def test_matches_struct(self):
        """Test encoding matches struct packing."""
        frames = render_note(ParsedNote(Fraction(1, 100), 440.0), RATE, AMP)
        data = samples_to_bytes(frames)
        unpacked = struct.unpack(f"<{frames.size}h", data)
        assert list(unpacked) == frames.reshape(-1).tolist()


class TestSynthesize:
    """Tests for synthesize and ToneStream."""

    def test_returns_stream(self):
        """Test synthesize returns a ToneStream."""
        assert isinstance(synthesize([], RATE, AMP), ToneStream)

    def test_empty(self):
        """Test no notes produce no frames."""
        stream = synthesize([], RATE, AMP)
        assert list(stream) == []
        assert len(stream) == 0

    def test_frame_count(self):
        """Test the total frame count sums floor(r * d) over notes."""
        notes = [ParsedNote(Fraction(1, 8), 440.0), ParsedNote(Fraction(1, 3), 0.0)]
        stream = synthesize(notes, RATE, AMP)
        assert len(stream) == 1000 + 2666
        assert len(list(stream)) == 1000 + 2666

    def test_yields_int_pairs(self):
        """Test iteration yields (left, right) Python ints."""
        stream = synthesize([ParsedNote(Fraction(1, 100), 440.0)], RATE, AMP)
        for left, right in stream:
            assert isinstance(left, int)
            assert left == right

    def test_restartable(self):
        """Test the stream can be iterated more than once with the same result."""
        stream = synthesize([ParsedNote(Fraction(1, 50), 330.0)], RATE, AMP)
        assert list(stream) == list(stream)

    def test_accepts_generator(self):
        """Test a one-shot generator of notes still gives a restartable stream."""
        notes = (ParsedNote(Fraction(1, 50), f) for f in (330.0, 440.0))
        stream = synthesize(notes, RATE, AMP)
        assert len(list(stream)) == 320
        assert len(list(stream)) == 320

    def test_note_order_preserved(self):
        """Test a silence followed by a tone stays in that order."""
        notes = [ParsedNote(Fraction(1, 10), 0.0), ParsedNote(Fraction(1, 10), 440.0)]
        frames = list(synthesize(notes, RATE, AMP))
        assert all(left == 0 for left, _ in frames[:800])
        assert any(left != 0 for left, _ in frames[800:])

    def test_chunks_per_note(self):
        """Test notes shorter than a block are one chunk each."""
        notes = [ParsedNote(Fraction(1, 10), 440.0), ParsedNote(Fraction(1, 5), 0.0)]
        chunks = list(synthesize(notes, RATE, AMP).chunks())
        assert [len(c) for c in chunks] == [800, 1600]

    def test_iter_bytes(self):
        """Test iter_bytes concatenates to the full PCM stream."""
        notes = [ParsedNote(Fraction(1, 10), 440.0), ParsedNote(Fraction(1, 10), 660.0)]
        stream = synthesize(notes, RATE, AMP)
        data = b"".join(stream.iter_bytes())
        assert len(data) == 1600 * 4

    def test_lazy_overflow(self):
        """Test overflow is raised when rendering, not when building the stream."""
        stream = synthesize([ParsedNote(Fraction(1), 1000.0)], RATE, 40000)
        with pytest.raises(SampleOutOfRange):
            list(stream)

    def test_duration_seconds(self):
        """Test duration in seconds."""
        stream = synthesize([ParsedNote(Fraction(1, 2), 440.0)], RATE, AMP)
        assert stream.duration_seconds() == 0.5


class TestBlocks:
    """Tests for rendering long notes in bounded blocks."""

    def test_render_note_slice(self):
        """Test start and count select frames with continuous phase."""
        note = ParsedNote(Fraction(1, 10), 440.0)
        full = render_note(note, RATE, AMP)
        np.testing.assert_array_equal(render_note(note, RATE, AMP, 100, 50), full[100:150])

    def test_render_note_slice_past_end(self):
        """Test a slice running past the note is cut at the note's end."""
        note = ParsedNote(Fraction(1, 10), 440.0)
        assert render_note(note, RATE, AMP, 700, 300).shape == (100, 2)
        assert render_note(note, RATE, AMP, 900, 300).shape == (0, 2)

    def test_long_note_split_into_blocks(self):
        """Test a note longer than a block yields several chunks that join up exactly."""
        note = ParsedNote(Fraction(1, 10), 440.0)
        stream = ToneStream([note], RATE, AMP, block_size=300)
        chunks = list(stream.chunks())
        assert [len(c) for c in chunks] == [300, 300, 200]
        np.testing.assert_array_equal(np.concatenate(chunks), render_note(note, RATE, AMP))

    def test_blocks_in_note_order(self):
        """Test blocks of consecutive notes stay in order."""
        notes = [ParsedNote(Fraction(1, 20), 440.0), ParsedNote(Fraction(1, 20), 0.0)]
        chunks = list(ToneStream(notes, RATE, AMP, block_size=250).chunks())
        assert [len(c) for c in chunks] == [250, 150, 250, 150]
        assert chunks[0].any()
        assert not chunks[2].any() and not chunks[3].any()

    def test_iteration_matches_blocks(self):
        """Test frame iteration gives the same samples regardless of block size."""
        notes = [ParsedNote(Fraction(1, 20), 330.0)]
        assert list(ToneStream(notes, RATE, AMP, block_size=7)) == list(ToneStream(notes, RATE, AMP))

    def test_very_long_note_is_lazy(self):
        """Test a note far too long to hold in memory still streams block by block."""
        stream = synthesize([ParsedNote(Fraction(99999999), 261.63)], RATE, AMP)
        assert len(stream) == 99999999 * RATE
        first = next(stream.chunks())
        assert first.shape == (BLOCK_FRAMES, 2)
        assert len(next(stream.iter_bytes())) == BLOCK_FRAMES * 4

    def test_bad_block_size(self):
        """Test block_size must be positive."""
        with pytest.raises(ValueError):
            ToneStream([], RATE, AMP, block_size=0)


class TestCheckAmplitude:
    """Tests for check_amplitude function."""

    @pytest.mark.parametrize("amp", [0, 16383.5, 32767, 32767.4, -32767])
    def test_encodable(self, amp):
        """Test amplitudes that round to at most 32767 pass."""
        check_amplitude(amp)

    @pytest.mark.parametrize("amp", [32768, 40000, -40000])
    def test_too_loud(self, amp):
        """Test amplitudes beyond 16 bits raise SampleOutOfRange."""
        with pytest.raises(SampleOutOfRange):
            check_amplitude(amp)
