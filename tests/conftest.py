"""
Shared helpers for building MPKG archives in tests.
"""

import struct

import pytest


def build_archive(members, header=b"v1", reserved=b"\x00\x00\x00\x00"):
    """
    Build MPKG archive bytes.

    Args:
        members: List of (name, payload) pairs; names may be str or bytes
        header: Raw header text
        reserved: The 4 bytes written into each entry's reserved field
    """
    data = struct.pack("<I", len(header)) + header
    data += struct.pack("<I", len(members))
    for name, payload in members:
        raw_name = name.encode("utf-8") if isinstance(name, str) else name
        data += struct.pack("<I", len(raw_name)) + raw_name
        data += reserved
        data += struct.pack("<I", len(payload))
    for _, payload in members:
        data += payload
    return data


@pytest.fixture
def write_archive(tmp_path):
    """Write archive bytes to ``tmp_path/<filename>`` and return the path."""
    def _write(members, filename="sample.mpkg", **kwargs):
        path = tmp_path / filename
        path.write_bytes(build_archive(members, **kwargs))
        return path
    return _write
