"""Bencoding module.

This module provides a convenient interface to the core bencode functionality.
"""

from __future__ import annotations

from torrentmeta.core.bencode import (
    BencodeDecoder,
    BencodeEncoder,
    BencodeValue,
    decode,
    decode_dictionary_ranges,
    decode_dictionary_spans,
    encode,
)
from torrentmeta.utils.exceptions import (
    BencodeDecodeError,
    BencodeEncodeError,
    BencodeError,
)

__all__ = [
    "BencodeDecodeError",
    "BencodeDecoder",
    "BencodeEncodeError",
    "BencodeEncoder",
    "BencodeError",
    "BencodeValue",
    "decode",
    "decode_dictionary_ranges",
    "decode_dictionary_spans",
    "encode",
]
