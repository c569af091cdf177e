"""Exceptions raised by the fountain encoder, decoder and part codec."""

from __future__ import annotations


class FountainError(Exception):
    """Base class for recoverable fountain-code errors."""


class InvalidArgument(FountainError, ValueError):
    """Raised when an encoder is constructed with an unusable message or
    fragment-length policy. No encoder is produced."""


class MalformedPart(FountainError, ValueError):
    """Raised when a wire-form part cannot be decoded, or when its fields
    are inconsistent with the encoding it claims to belong to."""


class ChecksumMismatch(FountainError):
    """Raised when a fully reassembled message does not match its checksum."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"checksum mismatch: expected {expected:#010x}, got {actual:#010x}")
        self.expected = expected
        self.actual = actual
