"""Pytest configuration and shared fixtures for torrentmeta tests."""

from __future__ import annotations

import logging
import os

import pytest

from torrentmeta.config.config import reset_config, set_config
from torrentmeta.core.bencode import encode
from torrentmeta.models import Config


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("unit", "marks tests as unit tests"),
        ("core", "marks tests as core functionality tests"),
        ("config", "marks tests as configuration tests"),
        ("observability", "marks tests as logging tests"),
        ("property", "marks tests as property-based tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Run every test against default configuration.

    Environment overrides and config files in the working directory are
    ignored so local settings cannot leak into results.
    """
    for name in list(os.environ):
        if name.startswith("TORRENTMETA_"):
            monkeypatch.delenv(name)
    set_config(Config())
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    package_logger = logging.getLogger("torrentmeta")
    for handler in package_logger.handlers[:]:
        handler.close()
        package_logger.removeHandler(handler)
    # setup_logging stops propagation, which would hide records from caplog
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def single_file_torrent() -> dict:
    """Canonical single-file metainfo tree."""
    return {
        b"announce": b"http://tracker.example.com:6969/announce",
        b"announce-list": [
            [b"http://tracker.example.com:6969/announce"],
            [b"udp://backup.example.com:1337/announce", b"http://mirror.example.com/announce"],
        ],
        b"comment": b"Test torrent",
        b"created by": b"torrentmeta tests",
        b"creation date": 1700000000,
        b"info": {
            b"length": 1024,
            b"name": b"test_file.txt",
            b"piece length": 16384,
            b"pieces": bytes(range(20)) + bytes(range(20, 40)),
        },
    }


@pytest.fixture
def multi_file_torrent() -> dict:
    """Canonical multi-file metainfo tree."""
    return {
        b"announce": b"http://tracker.example.com:6969/announce",
        b"info": {
            b"files": [
                {b"length": 1000, b"path": [b"file1.txt"]},
                {b"length": 2000, b"path": [b"subdir", b"file2.txt"]},
            ],
            b"name": b"TestDirectory",
            b"piece length": 32768,
            b"pieces": b"x" * 60,
        },
    }


@pytest.fixture
def single_file_bytes(single_file_torrent) -> bytes:
    """Bencoded single-file metainfo."""
    return encode(single_file_torrent)


@pytest.fixture
def multi_file_bytes(multi_file_torrent) -> bytes:
    """Bencoded multi-file metainfo."""
    return encode(multi_file_torrent)
