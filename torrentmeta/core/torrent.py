"""Torrent metainfo decoding and encoding.

Maps a decoded bencode tree onto :class:`TorrentMetadata` and back. The exact
bytes of the ``info`` value are captured from the source buffer so the info
hash is computed over what was actually received.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from torrentmeta.core.bencode import (
    decode,
    decode_dictionary_ranges,
    encode,
    to_bytes,
    to_text,
)
from torrentmeta.models import (
    PIECE_HASH_LENGTH,
    FileEntry,
    TorrentInfo,
    TorrentMetadata,
)
from torrentmeta.utils.exceptions import (
    InvalidPieceLengthError,
    InvalidTextEncodingError,
    MissingFieldError,
    TorrentError,
    WrongFieldTypeError,
)
from torrentmeta.utils.logging_config import LoggingContext

logger = logging.getLogger(__name__)

_TYPE_NAMES = {
    bytes: "a byte string",
    int: "an integer",
    list: "a list",
    dict: "a dictionary",
}


def split_pieces(pieces_data: bytes) -> list[bytes]:
    """Split concatenated piece hashes into 20-byte chunks, in order.

    Raises:
        InvalidPieceLengthError: If the length is not a multiple of 20

    """
    if len(pieces_data) % PIECE_HASH_LENGTH != 0:
        raise InvalidPieceLengthError(len(pieces_data))
    return [
        pieces_data[i : i + PIECE_HASH_LENGTH]
        for i in range(0, len(pieces_data), PIECE_HASH_LENGTH)
    ]


class TorrentMetadataParser:
    """Converts between bencoded metainfo and :class:`TorrentMetadata`."""

    def __init__(
        self,
        text_encoding: str | None = None,
        max_depth: int | None = None,
    ) -> None:
        """Initialize the parser.

        Args:
            text_encoding: Codec for text fields, defaults to configuration
            max_depth: Maximum nesting depth, defaults to configuration

        """
        self.text_encoding = text_encoding
        self.max_depth = max_depth

    def decode(self, data: bytes | bytearray | memoryview) -> TorrentMetadata:
        """Decode bencoded metainfo.

        Args:
            data: Complete metainfo buffer

        Returns:
            TorrentMetadata with ``info_raw`` set to the literal info bytes

        Raises:
            BencodeDecodeError: If the buffer is not well-formed bencode
            TorrentError: If required fields are missing or mistyped

        """
        with LoggingContext("torrent_decode", logger=logger, size=len(data)):
            root = decode(data, max_depth=self.max_depth)
            if not isinstance(root, dict):
                raise WrongFieldTypeError("root", _TYPE_NAMES[dict], root)

            info = self._extract_info(self._require(root, b"info", dict, "info"))
            info_raw = decode_dictionary_ranges(data, max_depth=self.max_depth)[b"info"]

            try:
                metadata = TorrentMetadata(
                    announce=self._text(
                        self._require(root, b"announce", bytes, "announce"),
                        "announce",
                    ),
                    announce_list=self._extract_announce_list(root),
                    creation_date=self._extract_creation_date(root),
                    comment=self._optional_text(root, b"comment", "comment"),
                    created_by=self._optional_text(root, b"created by", "created by"),
                    encoding=self._optional_text(root, b"encoding", "encoding"),
                    info=info,
                    info_raw=info_raw,
                )
            except PydanticValidationError as e:
                msg = f"Invalid torrent metadata: {e}"
                raise TorrentError(msg) from e

        logger.debug(
            "Decoded torrent %r: %d pieces, %d bytes, info hash %s",
            metadata.info.name,
            metadata.info.num_pieces,
            metadata.info.total_length,
            metadata.info_hash_hex,
        )
        return metadata

    def encode(self, metadata: TorrentMetadata) -> bytes:
        """Encode metadata to bencode.

        Optional fields that are unset are omitted. Keys are laid out in
        sorted order, so canonical input re-encodes byte for byte.
        """
        tree: dict[bytes, Any] = {b"announce": self._bytes(metadata.announce)}
        if metadata.announce_list:
            tree[b"announce-list"] = [
                [self._bytes(url) for url in tier] for tier in metadata.announce_list
            ]
        if metadata.comment is not None:
            tree[b"comment"] = self._bytes(metadata.comment)
        if metadata.created_by is not None:
            tree[b"created by"] = self._bytes(metadata.created_by)
        if metadata.creation_date is not None:
            tree[b"creation date"] = int(metadata.creation_date.timestamp())
        if metadata.encoding is not None:
            tree[b"encoding"] = self._bytes(metadata.encoding)
        tree[b"info"] = self.build_info_tree(metadata.info)
        return encode(tree, max_depth=self.max_depth)

    def build_info_tree(self, info: TorrentInfo) -> dict[bytes, Any]:
        """Build the bencode tree of an info dictionary."""
        tree: dict[bytes, Any] = {}
        if info.length is not None:
            tree[b"length"] = info.length
        else:
            tree[b"files"] = [
                {
                    b"length": entry.length,
                    b"path": [self._bytes(part) for part in entry.path],
                }
                for entry in info.files or []
            ]
        tree[b"name"] = self._bytes(info.name)
        tree[b"piece length"] = info.piece_length
        tree[b"pieces"] = b"".join(info.pieces)
        if info.private is not None:
            tree[b"private"] = int(info.private)
        return tree

    def encode_info(self, info: TorrentInfo) -> bytes:
        """Encode the info dictionary on its own, as hashed for the info hash."""
        return encode(self.build_info_tree(info), max_depth=self.max_depth)

    def get_piece_hash(self, metadata: TorrentMetadata, piece_index: int) -> bytes:
        """Get the SHA-1 hash for a specific piece."""
        if piece_index < 0 or piece_index >= metadata.info.num_pieces:
            msg = f"Invalid piece index: {piece_index}"
            raise TorrentError(msg)

        return metadata.info.pieces[piece_index]

    def _extract_info(self, info: dict[bytes, Any]) -> TorrentInfo:
        """Extract the info dictionary.

        ``length`` takes priority over ``files`` when both are present.
        """
        name = self._text(self._require(info, b"name", bytes, "info.name"), "info.name")
        piece_length = self._require(info, b"piece length", int, "info.piece length")
        if piece_length <= 0:
            msg = "a positive integer"
            raise WrongFieldTypeError("info.piece length", msg, piece_length)
        pieces = split_pieces(self._require(info, b"pieces", bytes, "info.pieces"))

        length: int | None = None
        files: list[FileEntry] | None = None
        if b"length" in info:
            length = self._require(info, b"length", int, "info.length")
            if length < 0:
                msg = "a non-negative integer"
                raise WrongFieldTypeError("info.length", msg, length)
            if b"files" in info:
                logger.debug("Info has both 'length' and 'files'; using 'length'")
        elif b"files" in info:
            files = self._extract_files(self._require(info, b"files", list, "info.files"))
        else:
            raise MissingFieldError("info.length")

        private = self._optional(info, b"private", int, "info.private")

        try:
            return TorrentInfo(
                name=name,
                piece_length=piece_length,
                pieces=pieces,
                length=length,
                files=files,
                private=None if private is None else bool(private),
            )
        except PydanticValidationError as e:
            msg = f"Invalid info dictionary: {e}"
            raise TorrentError(msg) from e

    def _extract_files(self, files: list[Any]) -> list[FileEntry]:
        """Extract the multi-file list."""
        entries = []
        for index, file_info in enumerate(files):
            field = f"info.files[{index}]"
            if not isinstance(file_info, dict):
                raise WrongFieldTypeError(field, _TYPE_NAMES[dict], file_info)

            length = self._require(file_info, b"length", int, f"{field}.length")
            if length < 0:
                msg = "a non-negative integer"
                raise WrongFieldTypeError(f"{field}.length", msg, length)

            path_list = self._require(file_info, b"path", list, f"{field}.path")
            if not path_list:
                msg = "a non-empty list"
                raise WrongFieldTypeError(f"{field}.path", msg, path_list)
            path = []
            for part in path_list:
                if not isinstance(part, bytes):
                    raise WrongFieldTypeError(f"{field}.path", "a list of byte strings", part)
                path.append(self._text(part, f"{field}.path"))

            entries.append(FileEntry(path=path, length=length))
        return entries

    def _extract_announce_list(self, root: dict[bytes, Any]) -> list[list[str]]:
        """Extract announce tiers, dropping empty URLs."""
        tiers = self._optional(root, b"announce-list", list, "announce-list")
        if tiers is None:
            return []

        announce_list = []
        for tier in tiers:
            if not isinstance(tier, list):
                raise WrongFieldTypeError("announce-list", "a list of lists", tier)
            urls = []
            for url in tier:
                if not isinstance(url, bytes):
                    msg = "a list of lists of byte strings"
                    raise WrongFieldTypeError("announce-list", msg, url)
                text = self._text(url, "announce-list")
                if text:
                    urls.append(text)
            announce_list.append(urls)
        return announce_list

    def _extract_creation_date(self, root: dict[bytes, Any]) -> datetime | None:
        timestamp = self._optional(root, b"creation date", int, "creation date")
        if timestamp is None:
            return None
        try:
            return datetime.fromtimestamp(timestamp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            msg = f"Creation date out of range: {timestamp}"
            raise TorrentError(msg, {"field": "creation date"}) from e

    def _require(
        self,
        data: dict[bytes, Any],
        key: bytes,
        expected: type,
        field: str,
    ) -> Any:
        if key not in data:
            raise MissingFieldError(field)
        return self._check_type(data[key], expected, field)

    def _optional(
        self,
        data: dict[bytes, Any],
        key: bytes,
        expected: type,
        field: str,
    ) -> Any:
        if key not in data:
            return None
        return self._check_type(data[key], expected, field)

    def _check_type(self, value: Any, expected: type, field: str) -> Any:
        if not isinstance(value, expected):
            raise WrongFieldTypeError(field, _TYPE_NAMES[expected], value)
        return value

    def _optional_text(self, data: dict[bytes, Any], key: bytes, field: str) -> str | None:
        value = self._optional(data, key, bytes, field)
        return None if value is None else self._text(value, field)

    def _text(self, value: bytes, field: str) -> str:
        try:
            return to_text(value, self.text_encoding)
        except InvalidTextEncodingError as e:
            msg = f"Field {field!r} is not valid text"
            raise InvalidTextEncodingError(msg, {**e.details, "field": field}) from e

    def _bytes(self, text: str) -> bytes:
        return to_bytes(text, self.text_encoding)


def decode_torrent(
    data: bytes | bytearray | memoryview,
    *,
    text_encoding: str | None = None,
    max_depth: int | None = None,
) -> TorrentMetadata:
    """Decode bencoded metainfo into :class:`TorrentMetadata`."""
    parser = TorrentMetadataParser(text_encoding=text_encoding, max_depth=max_depth)
    return parser.decode(data)


def encode_torrent(
    metadata: TorrentMetadata,
    *,
    text_encoding: str | None = None,
    max_depth: int | None = None,
) -> bytes:
    """Encode :class:`TorrentMetadata` to bencoded metainfo."""
    parser = TorrentMetadataParser(text_encoding=text_encoding, max_depth=max_depth)
    return parser.encode(metadata)


def encode_info(
    info: TorrentInfo,
    *,
    text_encoding: str | None = None,
    max_depth: int | None = None,
) -> bytes:
    """Encode just the info dictionary."""
    parser = TorrentMetadataParser(text_encoding=text_encoding, max_depth=max_depth)
    return parser.encode_info(info)
