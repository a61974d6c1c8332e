"""
MPKG archive extraction library for Python.
This library provides functionality to read MPKG archive indexes and extract their members.
"""

from .core import (
    MPKGArchive, MPKGEntry, MPKGHeader, ArchiveState, ExtractionResult,
    decode_and_extract, extract_directory, find_archives
)
from .exceptions import (
    MPKGError, TruncatedInputError, TruncatedPayloadError,
    InvalidOutputTargetError, UnsafeMemberPathError
)
from .streams import copy_bounded, read_fixed_u32

__all__ = [
    'MPKGArchive', 'MPKGEntry', 'MPKGHeader', 'ArchiveState', 'ExtractionResult',
    'decode_and_extract', 'extract_directory', 'find_archives',
    'copy_bounded', 'read_fixed_u32',
    'MPKGError', 'TruncatedInputError', 'TruncatedPayloadError',
    'InvalidOutputTargetError', 'UnsafeMemberPathError',
]
__version__ = '0.1.0'
