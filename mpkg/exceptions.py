"""
Custom exceptions for the MPKG library.
"""

class MPKGError(Exception):
    """Base exception for MPKG-related errors."""
    pass

class TruncatedInputError(MPKGError):
    """Raised when a header or TOC field is cut short by end of input."""

    def __init__(self, field: str, expected: int, actual: int):
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Unexpected end of input reading {field}: "
            f"expected {expected} bytes, got {actual}"
        )

class TruncatedPayloadError(MPKGError):
    """Raised when the input ends before a member payload is complete."""

    def __init__(self, expected: int, remaining: int):
        self.expected = expected
        self.remaining = remaining
        super().__init__(
            f"Payload ended early: expected length {expected}, remaining {remaining}"
        )

class InvalidOutputTargetError(MPKGError):
    """Raised when the output root cannot be created or is not a directory."""
    pass

class UnsafeMemberPathError(MPKGError):
    """Raised when a member name would be written outside the output directory."""
    pass
