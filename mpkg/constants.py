"""
Constants for the MPKG container format and extraction defaults.
"""

import struct

# Copy buffer used when streaming member payloads
BUFFER_SIZE = 1024 * 1024  # 1 MiB

# File extension recognised when scanning a directory for archives
ARCHIVE_EXTENSION = ".mpkg"

# Field layout (all integers little-endian)
U32 = struct.Struct("<I")
U32_SIZE = U32.size
RESERVED_SIZE = 4

# Permissive decoding for header and member name text
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "replace"
