"""Exception hierarchy for torrentmeta.

Every error raised by the codec, the torrent adapter and the configuration
layer derives from TorrentMetaError, so callers can catch one base class.
"""

from __future__ import annotations

from typing import Any


class TorrentMetaError(Exception):
    """Base exception for all torrentmeta errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize torrentmeta error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ValidationError(TorrentMetaError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class BencodeError(ValidationError):
    """Bencode encoding/decoding errors."""


class BencodeDecodeError(BencodeError):
    """Input bytes are not well-formed bencode."""

    def __init__(
        self,
        message: str,
        position: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize decode error with the offset it was detected at."""
        details = dict(details or {})
        if position is not None:
            details["position"] = position
        super().__init__(message, details)
        self.position = position


class TruncatedInputError(BencodeDecodeError):
    """Buffer ended before an expected token."""


class InvalidIntegerError(BencodeDecodeError):
    """Integer or length token is not a valid decimal number."""


class UnrecognizedDelimiterError(BencodeDecodeError):
    """Leading byte matches no bencode grammar rule."""

    def __init__(self, byte: int, position: int | None = None):
        """Initialize with the offending byte."""
        super().__init__(
            f"Unrecognized bencode delimiter {bytes([byte])!r}",
            position,
            {"byte": byte},
        )
        self.byte = byte


class InvalidDictionaryKeyError(BencodeDecodeError):
    """Dictionary key is not a byte string."""


class NotADictionaryError(BencodeDecodeError):
    """Top-level object is not a dictionary where one is required."""


class TrailingDataError(BencodeDecodeError):
    """Bytes remain after the top-level object in strict mode."""


class NestingTooDeepError(BencodeDecodeError):
    """Nesting exceeds the configured maximum depth."""


class BencodeEncodeError(BencodeError):
    """Value cannot be represented in bencode."""


class InvalidTextEncodingError(BencodeError):
    """Conversion between bytes and text failed."""


class TorrentError(ValidationError):
    """Torrent metadata validation errors."""


class MissingFieldError(TorrentError):
    """Required torrent metadata field is absent."""

    def __init__(self, field: str):
        """Initialize with the missing field name."""
        super().__init__(f"Missing required field: {field}", {"field": field})
        self.field = field


class WrongFieldTypeError(TorrentError):
    """Torrent metadata field has an unexpected type."""

    def __init__(self, field: str, expected: str, actual: Any = None):
        """Initialize with the field name and the expected bencode type."""
        details: dict[str, Any] = {"field": field, "expected": expected}
        if actual is not None:
            details["actual"] = type(actual).__name__
        super().__init__(f"Field {field!r} must be {expected}", details)
        self.field = field
        self.expected = expected


class InvalidPieceLengthError(TorrentError):
    """Concatenated piece hashes are not a multiple of 20 bytes."""

    def __init__(self, length: int):
        """Initialize with the offending pieces length."""
        super().__init__(
            f"Invalid pieces data length: {length} bytes (should be multiple of 20)",
            {"length": length},
        )
        self.length = length
