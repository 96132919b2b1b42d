"""torrentmeta - bencode codec and BitTorrent metainfo model."""

from __future__ import annotations

__version__ = "0.1.0"

from torrentmeta.config.config import Config, ConfigManager, get_config, init_config
from torrentmeta.core.bencode import (
    BencodeDecoder,
    BencodeEncoder,
    decode,
    decode_dictionary_ranges,
    decode_dictionary_spans,
    encode,
)
from torrentmeta.core.torrent import (
    TorrentMetadataParser,
    decode_torrent,
    encode_torrent,
)
from torrentmeta.models import FileEntry, TorrentInfo, TorrentMetadata
from torrentmeta.utils.exceptions import (
    BencodeDecodeError,
    BencodeEncodeError,
    BencodeError,
    ConfigurationError,
    InvalidDictionaryKeyError,
    InvalidIntegerError,
    InvalidPieceLengthError,
    InvalidTextEncodingError,
    MissingFieldError,
    NestingTooDeepError,
    NotADictionaryError,
    TorrentError,
    TorrentMetaError,
    TrailingDataError,
    TruncatedInputError,
    UnrecognizedDelimiterError,
    ValidationError,
    WrongFieldTypeError,
)

__all__ = [
    "BencodeDecodeError",
    "BencodeDecoder",
    "BencodeEncodeError",
    "BencodeEncoder",
    "BencodeError",
    "Config",
    "ConfigManager",
    "ConfigurationError",
    "FileEntry",
    "InvalidDictionaryKeyError",
    "InvalidIntegerError",
    "InvalidPieceLengthError",
    "InvalidTextEncodingError",
    "MissingFieldError",
    "NestingTooDeepError",
    "NotADictionaryError",
    "TorrentError",
    "TorrentInfo",
    "TorrentMetaError",
    "TorrentMetadata",
    "TorrentMetadataParser",
    "TrailingDataError",
    "TruncatedInputError",
    "UnrecognizedDelimiterError",
    "ValidationError",
    "WrongFieldTypeError",
    "__version__",
    "decode",
    "decode_dictionary_ranges",
    "decode_dictionary_spans",
    "decode_torrent",
    "encode",
    "encode_torrent",
    "get_config",
    "init_config",
]
