"""Core bencode codec and torrent metainfo adapter.

- Bencoding (encoding/decoding, raw top-level dictionary ranges)
- Torrent metainfo decoding and encoding
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
from torrentmeta.core.torrent import (
    TorrentMetadataParser,
    decode_torrent,
    encode_info,
    encode_torrent,
    split_pieces,
)

__all__ = [
    # Bencoding
    "BencodeDecoder",
    "BencodeEncoder",
    "BencodeValue",
    # Torrent
    "TorrentMetadataParser",
    "decode",
    "decode_dictionary_ranges",
    "decode_dictionary_spans",
    "decode_torrent",
    "encode",
    "encode_info",
    "encode_torrent",
    "split_pieces",
]
