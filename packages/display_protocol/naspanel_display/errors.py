"""Exception hierarchy for panel display sessions."""

from __future__ import annotations


class DisplayError(Exception):
    """Base class for every error raised by a display session."""


class ClosedError(DisplayError):
    def __init__(self, message: str = "display closed") -> None:
        super().__init__(message)


class DeviceNotRespondingError(DisplayError):
    """Handshake or acknowledgment retries were exhausted."""

    def __init__(self, message: str = "display not working") -> None:
        super().__init__(message)


class SizeMismatchError(DisplayError):
    def __init__(self, expected: int, written: int) -> None:
        super().__init__(f"msg size mismatch: wrote {written} of {expected} bytes")
        self.expected = expected
        self.written = written


class TransportError(DisplayError):
    """Failure reported by the underlying serial channel."""
