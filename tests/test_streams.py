"""
Unit tests for the MPKG stream primitives.
"""

import io
import struct

import pytest
from mpkg.exceptions import TruncatedInputError, TruncatedPayloadError
from mpkg.streams import copy_bounded, read_exact, read_fixed_u32, skip_bytes, write_all


class TrickleReader(io.RawIOBase):
    """Raw stream that returns at most ``step`` bytes per read."""

    def __init__(self, data, step=1):
        self.data = data
        self.pos = 0
        self.step = step

    def readable(self):
        return True

    def readinto(self, buffer):
        n = min(len(buffer), self.step, len(self.data) - self.pos)
        buffer[:n] = self.data[self.pos:self.pos + n]
        self.pos += n
        return n


class ShortWriter(io.RawIOBase):
    """Raw stream that accepts at most ``step`` bytes per write."""

    def __init__(self, step=3):
        self.data = bytearray()
        self.step = step

    def writable(self):
        return True

    def write(self, buffer):
        taken = bytes(buffer[:self.step])
        self.data += taken
        return len(taken)


def test_read_fixed_u32_little_endian():
    """Test that four bytes are read as a little-endian unsigned integer."""
    stream = io.BytesIO(b"\x01\x02\x03\x04\xff")
    assert read_fixed_u32(stream) == 0x04030201
    assert stream.tell() == 4


def test_read_fixed_u32_round_trip():
    """Test that values written as little-endian u32 read back unchanged."""
    for value in (0, 1, 255, 65536, 0x7FFFFFFF, 0xFFFFFFFF):
        assert read_fixed_u32(io.BytesIO(struct.pack("<I", value))) == value


def test_read_fixed_u32_truncated():
    """Test that fewer than four bytes raise TruncatedInputError."""
    with pytest.raises(TruncatedInputError) as excinfo:
        read_fixed_u32(io.BytesIO(b"\x01\x02"), "member count")
    assert excinfo.value.expected == 4
    assert excinfo.value.actual == 2
    assert "member count" in str(excinfo.value)


def test_read_exact_handles_short_reads():
    """Test that read_exact keeps reading when the stream returns partial data."""
    stream = TrickleReader(b"abcdefgh", step=3)
    assert read_exact(stream, 7) == b"abcdefg"


def test_read_exact_zero_length():
    """Test that a zero-length read succeeds on an empty stream."""
    assert read_exact(io.BytesIO(b""), 0) == b""


def test_skip_bytes_consumes_without_seeking():
    """Test that skip_bytes advances a non-seekable stream."""
    stream = TrickleReader(b"\xde\xad\xbe\xef\x2a\x00\x00\x00")
    skip_bytes(stream, 4)
    assert read_fixed_u32(stream) == 42


def test_skip_bytes_truncated():
    """Test that skipping past the end raises TruncatedInputError."""
    with pytest.raises(TruncatedInputError):
        skip_bytes(io.BytesIO(b"\x00\x00"), 4)


def test_copy_bounded_exact_slice():
    """Test that exactly ``length`` bytes are copied and the rest is left."""
    source = io.BytesIO(b"0123456789")
    destination = io.BytesIO()
    assert copy_bounded(source, destination, 6, buffer_size=4) == 6
    assert destination.getvalue() == b"012345"
    assert source.read() == b"6789"


def test_copy_bounded_zero_length():
    """Test that copying zero bytes writes nothing and reads nothing."""
    source = io.BytesIO(b"abc")
    destination = io.BytesIO()
    assert copy_bounded(source, destination, 0) == 0
    assert destination.getvalue() == b""
    assert source.tell() == 0


def test_copy_bounded_short_reads_preserve_order():
    """Test that trickling input is copied in order."""
    data = bytes(range(256)) * 4
    destination = io.BytesIO()
    copy_bounded(TrickleReader(data, step=7), destination, len(data), buffer_size=64)
    assert destination.getvalue() == data


def test_copy_bounded_truncated_payload():
    """Test that a short source raises TruncatedPayloadError with the remaining count."""
    destination = io.BytesIO()
    with pytest.raises(TruncatedPayloadError) as excinfo:
        copy_bounded(io.BytesIO(b"hello"), destination, 8, buffer_size=2)
    assert excinfo.value.expected == 8
    assert excinfo.value.remaining == 3
    # Bytes read before the end are still written
    assert destination.getvalue() == b"hello"


def test_copy_bounded_rejects_bad_buffer_size():
    """Test that a non-positive buffer size is rejected."""
    with pytest.raises(ValueError):
        copy_bounded(io.BytesIO(b"abc"), io.BytesIO(), 3, buffer_size=0)


def test_copy_bounded_partial_writes():
    """Test that a destination taking a few bytes per write still gets everything."""
    data = b"the quick brown fox jumps"
    destination = ShortWriter(step=3)
    assert copy_bounded(io.BytesIO(data), destination, len(data), buffer_size=8) == len(data)
    assert bytes(destination.data) == data


def test_write_all_partial_writes():
    """Test that write_all retries until the whole buffer is written."""
    destination = ShortWriter(step=2)
    write_all(destination, b"abcdefg")
    assert bytes(destination.data) == b"abcdefg"
