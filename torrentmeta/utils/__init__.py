"""Shared utilities and infrastructure.

This module contains the exception hierarchy and logging helpers.
"""

from __future__ import annotations

from torrentmeta.utils.exceptions import (
    BencodeDecodeError,
    BencodeEncodeError,
    BencodeError,
    ConfigurationError,
    TorrentError,
    TorrentMetaError,
    ValidationError,
)
from torrentmeta.utils.logging_config import get_logger, setup_logging

__all__ = [
    "BencodeDecodeError",
    "BencodeEncodeError",
    "BencodeError",
    "ConfigurationError",
    "TorrentError",
    "TorrentMetaError",
    "ValidationError",
    "get_logger",
    "setup_logging",
]
