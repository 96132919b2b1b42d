"""Bencode encoding and decoding.

Decoded values use plain Python types:

- integers decode to ``int``
- byte strings decode to ``bytes`` (never implicitly converted to text)
- lists decode to ``list``
- dictionaries decode to ``dict`` with ``bytes`` keys

Besides full decoding, the decoder can report the exact byte spans of the
values of a top-level dictionary. The info hash of a torrent must be computed
over the literal ``info`` bytes of the source buffer, which an encoder
round-trip does not reproduce for non-canonical input.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Union

from torrentmeta.utils.exceptions import (
    BencodeEncodeError,
    InvalidDictionaryKeyError,
    InvalidIntegerError,
    InvalidTextEncodingError,
    NestingTooDeepError,
    NotADictionaryError,
    TrailingDataError,
    TruncatedInputError,
    UnrecognizedDelimiterError,
)

logger = logging.getLogger(__name__)

BencodeValue = Union[int, bytes, list["BencodeValue"], dict[bytes, "BencodeValue"]]

INTEGER = ord("i")
LIST = ord("l")
DICT = ord("d")
END = ord("e")
COLON = ord(":")
DIGIT_ZERO = ord("0")
DIGIT_NINE = ord("9")

# Leading zeros and "-0" are rejected.
_INTEGER_TOKEN = re.compile(rb"-?(?:0|[1-9][0-9]*)")
_LENGTH_TOKEN = re.compile(rb"0|[1-9][0-9]*")

# Matches the interpreter's default int/str conversion limit
MAX_INTEGER_DIGITS = 4300
_INTEGER_BOUND = 10**MAX_INTEGER_DIGITS


def _parse_decimal(token: bytes, position: int) -> int:
    """Convert a validated decimal token, enforcing the digit limit."""
    digits = len(token) - token.startswith(b"-")
    if digits > MAX_INTEGER_DIGITS:
        msg = f"Decimal token has {digits} digits, limit is {MAX_INTEGER_DIGITS}"
        raise InvalidIntegerError(msg, position, {"digits": digits})
    try:
        return int(token)
    except ValueError as e:
        msg = f"Decimal token of {digits} digits cannot be converted"
        raise InvalidIntegerError(msg, position, {"digits": digits}) from e


def _config_default(name: str) -> Any:
    from torrentmeta.config.config import get_config

    return getattr(get_config().bencode, name)


def to_text(data: bytes, encoding: str | None = None) -> str:
    """Convert a byte string to text, raising InvalidTextEncodingError on failure."""
    encoding = encoding or _config_default("text_encoding")
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as e:
        msg = f"Byte string is not valid {encoding}"
        raise InvalidTextEncodingError(msg, {"encoding": encoding}) from e


def to_bytes(text: str, encoding: str | None = None) -> bytes:
    """Convert text to a byte string, raising InvalidTextEncodingError on failure."""
    encoding = encoding or _config_default("text_encoding")
    try:
        return text.encode(encoding)
    except UnicodeEncodeError as e:
        msg = f"Text cannot be encoded as {encoding}"
        raise InvalidTextEncodingError(msg, {"encoding": encoding}) from e


class BencodeDecoder:
    """Recursive-descent bencode decoder.

    The cursor ``pos`` is private to the instance and is reset to 0 by every
    call to :meth:`decode` or :meth:`decode_spans`. After a successful call it
    points just past the top-level object.
    """

    def __init__(
        self,
        data: bytes | bytearray | memoryview,
        max_depth: int | None = None,
    ) -> None:
        """Initialize decoder over a complete in-memory buffer."""
        self.data = bytes(data)
        self.pos = 0
        self.max_depth = (
            max_depth if max_depth is not None else _config_default("max_depth")
        )

    def decode(self) -> BencodeValue:
        """Decode the top-level object.

        Returns:
            Decoded value

        Raises:
            BencodeDecodeError: If the buffer is not well-formed bencode

        """
        self.pos = 0
        if not self.data:
            msg = "Cannot decode empty input"
            raise TruncatedInputError(msg, 0)
        return self._decode_value(0)

    def decode_spans(self) -> dict[bytes, tuple[int, int]]:
        """Locate the values of the top-level dictionary.

        Nested values are validated while being skipped but never built.

        Returns:
            Mapping of key to ``(start, end)`` offsets of its value, end exclusive

        Raises:
            NotADictionaryError: If the top-level object is not a dictionary
            BencodeDecodeError: If the buffer is not well-formed bencode

        """
        self.pos = 0
        if not self.data:
            msg = "Cannot decode empty input"
            raise TruncatedInputError(msg, 0)
        if self.data[0] != DICT:
            msg = "Top-level object is not a dictionary"
            raise NotADictionaryError(msg, 0)

        spans: dict[bytes, tuple[int, int]] = {}
        self.pos += 1
        while self._peek() != END:
            key = self._decode_key()
            start = self.pos
            self._skip_value(1)
            if key in spans:
                logger.debug("Duplicate dictionary key %r, keeping last value", key)
            spans[key] = (start, self.pos)
        self.pos += 1
        return spans

    def _peek(self) -> int:
        if self.pos >= len(self.data):
            msg = "Unexpected end of input"
            raise TruncatedInputError(msg, self.pos)
        return self.data[self.pos]

    def _enter(self, depth: int) -> int:
        depth += 1
        if depth > self.max_depth:
            msg = f"Nesting exceeds maximum depth of {self.max_depth}"
            raise NestingTooDeepError(msg, self.pos, {"max_depth": self.max_depth})
        return depth

    def _decode_value(self, depth: int) -> BencodeValue:
        byte = self._peek()
        if DIGIT_ZERO <= byte <= DIGIT_NINE:
            start, end = self._read_string_bounds()
            return self.data[start:end]
        if byte == INTEGER:
            return self._read_integer()
        if byte == LIST:
            return self._decode_list(self._enter(depth))
        if byte == DICT:
            return self._decode_dict(self._enter(depth))
        raise UnrecognizedDelimiterError(byte, self.pos)

    def _decode_list(self, depth: int) -> list[BencodeValue]:
        self.pos += 1
        result: list[BencodeValue] = []
        while self._peek() != END:
            result.append(self._decode_value(depth))
        self.pos += 1
        return result

    def _decode_dict(self, depth: int) -> dict[bytes, BencodeValue]:
        self.pos += 1
        result: dict[bytes, BencodeValue] = {}
        while self._peek() != END:
            key = self._decode_key()
            if key in result:
                logger.debug("Duplicate dictionary key %r, keeping last value", key)
            result[key] = self._decode_value(depth)
        self.pos += 1
        return result

    def _decode_key(self) -> bytes:
        byte = self._peek()
        if not DIGIT_ZERO <= byte <= DIGIT_NINE:
            msg = f"Dictionary key must be a byte string, found {bytes([byte])!r}"
            raise InvalidDictionaryKeyError(msg, self.pos)
        start, end = self._read_string_bounds()
        return self.data[start:end]

    def _read_string_bounds(self) -> tuple[int, int]:
        """Consume a byte string and return the bounds of its payload."""
        colon = self.data.find(b":", self.pos)
        if colon == -1:
            msg = "Missing ':' after byte string length"
            raise TruncatedInputError(msg, self.pos)
        token = self.data[self.pos : colon]
        if not _LENGTH_TOKEN.fullmatch(token):
            msg = f"Invalid byte string length {token!r}"
            raise InvalidIntegerError(msg, self.pos)
        length = _parse_decimal(token, self.pos)
        start = colon + 1
        end = start + length
        if end > len(self.data):
            msg = (
                f"Byte string needs {length} bytes, "
                f"only {len(self.data) - start} remain"
            )
            raise TruncatedInputError(msg, start)
        self.pos = end
        return start, end

    def _read_integer(self) -> int:
        start = self.pos + 1
        end = self.data.find(b"e", start)
        if end == -1:
            msg = "Missing 'e' after integer"
            raise TruncatedInputError(msg, self.pos)
        token = self.data[start:end]
        if not _INTEGER_TOKEN.fullmatch(token) or token == b"-0":
            msg = f"Invalid integer {token!r}"
            raise InvalidIntegerError(msg, start)
        value = _parse_decimal(token, start)
        self.pos = end + 1
        return value

    def _skip_value(self, depth: int) -> None:
        byte = self._peek()
        if DIGIT_ZERO <= byte <= DIGIT_NINE:
            self._read_string_bounds()
        elif byte == INTEGER:
            self._read_integer()
        elif byte in (LIST, DICT):
            inner = self._enter(depth)
            self.pos += 1
            while self._peek() != END:
                if byte == DICT:
                    self._decode_key()
                self._skip_value(inner)
            self.pos += 1
        else:
            raise UnrecognizedDelimiterError(byte, self.pos)


class BencodeEncoder:
    """Bencode encoder.

    Dictionary keys are written in insertion order unless ``sort_keys`` is set.
    Text is converted with ``text_encoding``.
    """

    def __init__(
        self,
        sort_keys: bool | None = None,
        max_depth: int | None = None,
        text_encoding: str | None = None,
    ) -> None:
        """Initialize encoder, falling back to configured defaults."""
        self.sort_keys = (
            sort_keys if sort_keys is not None else _config_default("sort_keys")
        )
        self.max_depth = (
            max_depth if max_depth is not None else _config_default("max_depth")
        )
        self.text_encoding = text_encoding or _config_default("text_encoding")

    def encode(self, obj: Any) -> bytes:
        """Encode a value.

        Raises:
            BencodeEncodeError: If the value contains an unsupported type or
                nests too deeply
            InvalidTextEncodingError: If text cannot be converted to bytes

        """
        chunks: list[bytes] = []
        self._encode_value(obj, chunks, 0)
        return b"".join(chunks)

    def _encode_value(self, obj: Any, chunks: list[bytes], depth: int) -> None:
        if isinstance(obj, int):
            chunks.append(self._encode_int(obj))
        elif isinstance(obj, (bytes, bytearray, memoryview)):
            self._encode_bytes(bytes(obj), chunks)
        elif isinstance(obj, str):
            self._encode_bytes(to_bytes(obj, self.text_encoding), chunks)
        elif isinstance(obj, (list, tuple)):
            depth = self._enter(depth)
            chunks.append(b"l")
            for item in obj:
                self._encode_value(item, chunks, depth)
            chunks.append(b"e")
        elif isinstance(obj, dict):
            depth = self._enter(depth)
            items = [(self._encode_key(k), v) for k, v in obj.items()]
            if self.sort_keys:
                items.sort(key=lambda item: item[0])
            chunks.append(b"d")
            for key, value in items:
                self._encode_bytes(key, chunks)
                self._encode_value(value, chunks, depth)
            chunks.append(b"e")
        else:
            msg = f"Cannot encode type {type(obj).__name__}"
            raise BencodeEncodeError(msg)

    def _encode_int(self, value: int) -> bytes:
        if not -_INTEGER_BOUND < value < _INTEGER_BOUND:
            msg = f"Integer exceeds {MAX_INTEGER_DIGITS} decimal digits"
            raise BencodeEncodeError(msg, {"bit_length": value.bit_length()})
        try:
            return b"i%de" % value
        except ValueError as e:
            msg = "Integer cannot be converted to decimal"
            raise BencodeEncodeError(msg) from e

    def _encode_bytes(self, data: bytes, chunks: list[bytes]) -> None:
        chunks.append(b"%d:" % len(data))
        chunks.append(data)

    def _encode_key(self, key: Any) -> bytes:
        if isinstance(key, (bytes, bytearray, memoryview)):
            return bytes(key)
        if isinstance(key, str):
            return to_bytes(key, self.text_encoding)
        msg = f"Dictionary keys must be bytes or str, not {type(key).__name__}"
        raise BencodeEncodeError(msg)

    def _enter(self, depth: int) -> int:
        depth += 1
        if depth > self.max_depth:
            msg = f"Nesting exceeds maximum depth of {self.max_depth}"
            raise BencodeEncodeError(msg, {"max_depth": self.max_depth})
        return depth


def decode(
    data: bytes | bytearray | memoryview,
    *,
    max_depth: int | None = None,
    strict: bool | None = None,
) -> BencodeValue:
    """Decode a complete bencoded buffer.

    Trailing bytes after the top-level object are ignored unless ``strict``
    is set.
    """
    decoder = BencodeDecoder(data, max_depth=max_depth)
    value = decoder.decode()
    if decoder.pos != len(decoder.data):
        if strict if strict is not None else _config_default("strict"):
            msg = f"{len(decoder.data) - decoder.pos} trailing bytes after top-level object"
            raise TrailingDataError(msg, decoder.pos)
        logger.debug(
            "Ignoring %d trailing bytes after top-level object",
            len(decoder.data) - decoder.pos,
        )
    return value


def encode(
    obj: Any,
    *,
    sort_keys: bool | None = None,
    max_depth: int | None = None,
) -> bytes:
    """Encode a value to bencode."""
    return BencodeEncoder(sort_keys=sort_keys, max_depth=max_depth).encode(obj)


def decode_dictionary_spans(
    data: bytes | bytearray | memoryview,
    *,
    max_depth: int | None = None,
) -> dict[bytes, tuple[int, int]]:
    """Return ``(start, end)`` offsets of each top-level dictionary value."""
    return BencodeDecoder(data, max_depth=max_depth).decode_spans()


def decode_dictionary_ranges(
    data: bytes | bytearray | memoryview,
    *,
    max_depth: int | None = None,
) -> dict[bytes, bytes]:
    """Return the literal bytes of each top-level dictionary value."""
    decoder = BencodeDecoder(data, max_depth=max_depth)
    return {
        key: decoder.data[start:end]
        for key, (start, end) in decoder.decode_spans().items()
    }
