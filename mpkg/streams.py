"""
Stream primitives for reading MPKG containers.

Fixed-width integer reads, exact-length reads and a length-bounded copy
between binary streams. None of these seek, so any readable binary
stream works as input.
"""

from typing import BinaryIO

from .constants import BUFFER_SIZE, U32, U32_SIZE
from .exceptions import TruncatedInputError, TruncatedPayloadError


def read_exact(stream: BinaryIO, length: int, field: str = "field") -> bytes:
    """
    Read exactly ``length`` bytes from a stream.

    Args:
        stream: Readable binary stream
        length: Number of bytes to read
        field: Description of what is being read, used in error messages

    Returns:
        The bytes read

    Raises:
        TruncatedInputError: If the stream ends before ``length`` bytes
    """
    data = stream.read(length)
    if len(data) == length:
        return data

    # Unbuffered streams may return short reads before EOF
    parts = [data]
    received = len(data)
    while received < length:
        chunk = stream.read(length - received)
        if not chunk:
            raise TruncatedInputError(field, length, received)
        parts.append(chunk)
        received += len(chunk)
    return b"".join(parts)


def read_fixed_u32(stream: BinaryIO, field: str = "u32") -> int:
    """Read a little-endian unsigned 32-bit integer."""
    return U32.unpack(read_exact(stream, U32_SIZE, field))[0]


def skip_bytes(stream: BinaryIO, length: int, field: str = "reserved") -> None:
    """Consume ``length`` bytes without interpreting them."""
    read_exact(stream, length, field)


def write_all(stream: BinaryIO, data: bytes) -> None:
    """Write every byte of ``data``, retrying after partial raw writes."""
    view = memoryview(data)
    while view:
        written = stream.write(view)
        # Writers that return None take the whole buffer
        if written is None:
            return
        view = view[written:]


def copy_bounded(source: BinaryIO, destination: BinaryIO, length: int,
                 buffer_size: int = BUFFER_SIZE) -> int:
    """
    Copy exactly ``length`` bytes from one stream to another.

    Data moves through a buffer of at most ``buffer_size`` bytes, so the
    payload is never held in memory as a whole.

    Args:
        source: Readable binary stream positioned at the payload
        destination: Writable binary stream
        length: Number of bytes to copy
        buffer_size: Maximum bytes read per iteration

    Returns:
        Number of bytes copied (always ``length``)

    Raises:
        TruncatedPayloadError: If the source ends before ``length`` bytes
    """
    if buffer_size <= 0:
        raise ValueError(f"buffer_size must be positive, got {buffer_size}")

    remaining = length
    while remaining > 0:
        chunk = source.read(min(buffer_size, remaining))
        if not chunk:
            raise TruncatedPayloadError(length, remaining)
        write_all(destination, chunk)
        remaining -= len(chunk)

    return length
