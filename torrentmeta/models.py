"""Pydantic models for torrentmeta.

Provides validated data models for the torrent metadata records produced by
the adapter and for the library configuration.
"""

from __future__ import annotations

import codecs
import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

PIECE_HASH_LENGTH = 20


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FileEntry(BaseModel):
    """One file of a multi-file torrent."""

    path: list[str] = Field(
        ...,
        min_length=1,
        description="Path components relative to the torrent directory",
    )
    length: int = Field(..., ge=0, description="File length in bytes")

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        """Last path component."""
        return self.path[-1]


class TorrentInfo(BaseModel):
    """Contents of the ``info`` dictionary.

    Exactly one of ``length`` (single-file) and ``files`` (multi-file) is set.
    """

    name: str = Field(..., description="Suggested file or directory name")
    piece_length: int = Field(..., gt=0, description="Piece length in bytes")
    pieces: list[bytes] = Field(
        default_factory=list,
        description="SHA-1 piece hashes, 20 bytes each, in piece order",
    )
    length: int | None = Field(
        None,
        ge=0,
        description="Total length in bytes (single-file torrents)",
    )
    files: list[FileEntry] | None = Field(
        None,
        description="File list (multi-file torrents)",
    )
    private: bool | None = Field(
        None,
        description="Private flag (BEP 27), None when the key is absent",
    )

    model_config = {"frozen": True}

    @field_validator("pieces")
    @classmethod
    def validate_pieces(cls, v: list[bytes]) -> list[bytes]:
        """Validate every piece hash is 20 bytes."""
        for index, piece in enumerate(v):
            if len(piece) != PIECE_HASH_LENGTH:
                msg = (
                    f"Piece hash {index} is {len(piece)} bytes, "
                    f"expected {PIECE_HASH_LENGTH}"
                )
                raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_shape(self) -> TorrentInfo:
        """Validate that exactly one of length and files is set."""
        if (self.length is None) == (self.files is None):
            msg = "Exactly one of 'length' (single file) or 'files' (multi-file) must be set"
            raise ValueError(msg)
        return self

    @property
    def is_single_file(self) -> bool:
        """Check if this is a single-file torrent."""
        return self.length is not None

    @property
    def total_length(self) -> int:
        """Total content length in bytes."""
        if self.length is not None:
            return self.length
        return sum(f.length for f in self.files or [])

    @property
    def is_private(self) -> bool:
        """Check if the torrent is marked private."""
        return bool(self.private)

    @property
    def num_pieces(self) -> int:
        """Number of pieces."""
        return len(self.pieces)


class TorrentMetadata(BaseModel):
    """Decoded torrent metainfo."""

    announce: str = Field(..., description="Primary announce URL")
    announce_list: list[list[str]] = Field(
        default_factory=list,
        description="Announce tiers (BEP 12)",
    )
    creation_date: datetime | None = Field(None, description="Creation time (UTC)")
    comment: str | None = Field(None, description="Free-form comment")
    created_by: str | None = Field(None, description="Creating program")
    encoding: str | None = Field(None, description="Declared string encoding")
    info: TorrentInfo = Field(..., description="Info dictionary")
    info_raw: bytes | None = Field(
        None,
        description="Exact bytes of the info value in the source buffer",
    )

    model_config = {"frozen": True}

    @field_validator("creation_date")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive creation dates as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def info_hash(self) -> bytes:
        """SHA-1 over the info dictionary.

        Uses the captured source bytes when present. Records built in memory
        hash the encoder output instead.
        """
        if self.info_raw is not None:
            raw = self.info_raw
        else:
            from torrentmeta.core.torrent import encode_info

            raw = encode_info(self.info)
        return hashlib.sha1(raw).digest()  # nosec B324 - SHA-1 required by BitTorrent protocol (BEP 3)

    @property
    def info_hash_hex(self) -> str:
        """Info hash as lowercase hex."""
        return self.info_hash.hex()

    @property
    def trackers(self) -> list[str]:
        """All announce URLs, primary first, without duplicates."""
        seen: list[str] = [self.announce]
        for tier in self.announce_list:
            for url in tier:
                if url not in seen:
                    seen.append(url)
        return seen


class BencodeConfig(BaseModel):
    """Codec configuration."""

    max_depth: int = Field(
        default=256,
        ge=1,
        le=400,
        description="Maximum nesting depth accepted by decoder and encoder",
    )
    text_encoding: str = Field(
        default="utf-8",
        description="Codec used to convert between byte strings and text",
    )
    sort_keys: bool = Field(
        default=False,
        description="Sort dictionary keys when encoding (canonical bencode)",
    )
    strict: bool = Field(
        default=False,
        description="Reject trailing bytes after the top-level object",
    )

    @field_validator("text_encoding")
    @classmethod
    def validate_text_encoding(cls, v: str) -> str:
        """Validate the codec name is known to Python."""
        try:
            codecs.lookup(v)
        except LookupError as e:
            msg = f"Unknown text encoding: {v}"
            raise ValueError(msg) from e
        return v


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Use structured JSON logging on the console",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept log level names in any case."""
        if isinstance(v, str):
            return v.upper()
        return v


class Config(BaseModel):
    """Main configuration model."""

    bencode: BencodeConfig = Field(
        default_factory=BencodeConfig,
        description="Codec configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )
