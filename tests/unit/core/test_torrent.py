"""Tests for torrent metainfo decoding and encoding.
"""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

pytestmark = [pytest.mark.unit, pytest.mark.core]

from torrentmeta.core.bencode import encode
from torrentmeta.core.torrent import (
    TorrentMetadataParser,
    decode_torrent,
    encode_info,
    encode_torrent,
    split_pieces,
)
from torrentmeta.models import FileEntry, TorrentInfo, TorrentMetadata
from torrentmeta.utils.exceptions import (
    BencodeDecodeError,
    BencodeEncodeError,
    InvalidPieceLengthError,
    InvalidTextEncodingError,
    MissingFieldError,
    NestingTooDeepError,
    TorrentError,
    WrongFieldTypeError,
)


class TestTorrentDecode:
    """Test cases for decoding metainfo."""

    def test_decode_single_file_torrent(self, single_file_bytes):
        """Test decoding a single file torrent."""
        result = decode_torrent(single_file_bytes)

        assert result.announce == "http://tracker.example.com:6969/announce"
        assert result.announce_list == [
            ["http://tracker.example.com:6969/announce"],
            ["udp://backup.example.com:1337/announce", "http://mirror.example.com/announce"],
        ]
        assert result.comment == "Test torrent"
        assert result.created_by == "torrentmeta tests"
        assert result.creation_date == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert result.encoding is None

        info = result.info
        assert info.name == "test_file.txt"
        assert info.length == 1024
        assert info.files is None
        assert info.is_single_file
        assert info.total_length == 1024
        assert info.piece_length == 16384
        assert info.num_pieces == 2
        assert info.pieces == [bytes(range(20)), bytes(range(20, 40))]
        assert info.private is None
        assert not info.is_private

    def test_decode_multi_file_torrent(self, multi_file_bytes):
        """Test decoding a multi-file torrent."""
        result = decode_torrent(multi_file_bytes)

        assert result.announce_list == []
        assert result.creation_date is None
        assert result.comment is None

        info = result.info
        assert info.name == "TestDirectory"
        assert info.length is None
        assert not info.is_single_file
        assert info.files == [
            FileEntry(path=["file1.txt"], length=1000),
            FileEntry(path=["subdir", "file2.txt"], length=2000),
        ]
        assert info.files[1].name == "file2.txt"
        assert info.total_length == 3000
        assert info.num_pieces == 3

    def test_decode_captures_info_raw(self, single_file_torrent, single_file_bytes):
        """info_raw holds the literal info bytes and feeds the info hash."""
        result = decode_torrent(single_file_bytes)
        expected_raw = encode(single_file_torrent[b"info"])

        assert result.info_raw == expected_raw
        assert result.info_hash == hashlib.sha1(expected_raw).digest()  # nosec B324
        assert result.info_hash_hex == hashlib.sha1(expected_raw).hexdigest()  # nosec B324
        assert len(result.info_hash) == 20

    def test_info_hash_uses_source_bytes(self):
        """Non-canonical info dictionaries are hashed as received."""
        unsorted_info = b"d4:name1:a6:lengthi1e6:pieces0:12:piece lengthi1ee"
        data = b"d8:announce1:x4:info" + unsorted_info + b"e"

        result = decode_torrent(data)
        assert result.info_raw == unsorted_info
        assert result.info_hash == hashlib.sha1(unsorted_info).digest()  # nosec B324
        assert result.info_hash != hashlib.sha1(encode_info(result.info)).digest()  # nosec B324

    def test_decode_accepts_bytearray(self, single_file_bytes):
        """Mutable buffers decode the same as bytes."""
        assert decode_torrent(bytearray(single_file_bytes)) == decode_torrent(single_file_bytes)

    def test_trackers(self, single_file_bytes):
        """Trackers list announce first and drops duplicates."""
        result = decode_torrent(single_file_bytes)
        assert result.trackers == [
            "http://tracker.example.com:6969/announce",
            "udp://backup.example.com:1337/announce",
            "http://mirror.example.com/announce",
        ]

    def test_announce_list_drops_empty_urls(self, single_file_torrent):
        """Empty URLs are removed from their tier."""
        single_file_torrent[b"announce-list"] = [[b"", b"http://a/announce"], [b""]]
        result = decode_torrent(encode(single_file_torrent))
        assert result.announce_list == [["http://a/announce"], []]

    def test_length_takes_priority_over_files(self, single_file_torrent):
        """An info dictionary with both shapes is single-file."""
        single_file_torrent[b"info"][b"files"] = [{b"length": 5, b"path": [b"a"]}]
        info = decode_torrent(encode(single_file_torrent)).info

        assert info.is_single_file
        assert info.length == 1024
        assert info.files is None

    def test_pieces_split(self):
        """Concatenated hashes split into 20-byte chunks in order."""
        assert split_pieces(b"") == []
        assert split_pieces(b"a" * 20 + b"b" * 20) == [b"a" * 20, b"b" * 20]

    def test_pieces_invalid_length(self, single_file_torrent):
        """Pieces that are not a multiple of 20 bytes are rejected."""
        single_file_torrent[b"info"][b"pieces"] = b"x" * 39

        with pytest.raises(InvalidPieceLengthError) as exc_info:
            decode_torrent(encode(single_file_torrent))
        assert exc_info.value.length == 39
        assert "should be multiple of 20" in str(exc_info.value)

    def test_private_flag(self, single_file_torrent):
        """The private flag is read as an integer flag."""
        single_file_torrent[b"info"][b"private"] = 1
        assert decode_torrent(encode(single_file_torrent)).info.is_private

        single_file_torrent[b"info"][b"private"] = 0
        info = decode_torrent(encode(single_file_torrent)).info
        assert info.private is False
        assert not info.is_private

    def test_text_encoding_error(self, single_file_torrent):
        """Names that are not valid text report the field."""
        single_file_torrent[b"info"][b"name"] = b"caf\xe9"

        with pytest.raises(InvalidTextEncodingError) as exc_info:
            decode_torrent(encode(single_file_torrent))
        assert exc_info.value.details["field"] == "info.name"

        info = decode_torrent(encode(single_file_torrent), text_encoding="latin-1").info
        assert info.name == "café"

    def test_decode_invalid_bencode(self):
        """Malformed input surfaces the codec error."""
        with pytest.raises(BencodeDecodeError):
            decode_torrent(b"d8:announce")

    def test_decode_root_not_dict(self):
        """A non-dictionary root is a wrong-type error."""
        with pytest.raises(WrongFieldTypeError) as exc_info:
            decode_torrent(b"l4:spame")
        assert exc_info.value.field == "root"

    def test_creation_date_out_of_range(self, single_file_torrent):
        """Timestamps beyond the datetime range are rejected."""
        single_file_torrent[b"creation date"] = 10**20
        with pytest.raises(TorrentError):
            decode_torrent(encode(single_file_torrent))


class TestTorrentFieldErrors:
    """Missing and mistyped fields."""

    @pytest.mark.parametrize(
        ("path", "field"),
        [
            ((b"announce",), "announce"),
            ((b"info",), "info"),
            ((b"info", b"name"), "info.name"),
            ((b"info", b"piece length"), "info.piece length"),
            ((b"info", b"pieces"), "info.pieces"),
            ((b"info", b"length"), "info.length"),
        ],
    )
    def test_missing_field(self, single_file_torrent, path, field):
        """Absent required keys raise MissingFieldError naming the field."""
        container = single_file_torrent
        for key in path[:-1]:
            container = container[key]
        del container[path[-1]]

        with pytest.raises(MissingFieldError) as exc_info:
            decode_torrent(encode(single_file_torrent))
        assert exc_info.value.field == field
        assert exc_info.value.details == {"field": field}

    @pytest.mark.parametrize(
        ("path", "value", "field"),
        [
            ((b"announce",), 5, "announce"),
            ((b"info",), [], "info"),
            ((b"info", b"name"), 1, "info.name"),
            ((b"info", b"piece length"), b"16384", "info.piece length"),
            ((b"info", b"piece length"), 0, "info.piece length"),
            ((b"info", b"pieces"), [], "info.pieces"),
            ((b"info", b"length"), -1, "info.length"),
            ((b"info", b"private"), b"1", "info.private"),
            ((b"comment",), 3, "comment"),
            ((b"creation date",), b"2023", "creation date"),
            ((b"announce-list",), b"http://x", "announce-list"),
            ((b"announce-list",), [b"http://x"], "announce-list"),
            ((b"announce-list",), [[1]], "announce-list"),
        ],
    )
    def test_wrong_field_type(self, single_file_torrent, path, value, field):
        """Present keys of the wrong type raise WrongFieldTypeError."""
        container = single_file_torrent
        for key in path[:-1]:
            container = container[key]
        container[path[-1]] = value

        with pytest.raises(WrongFieldTypeError) as exc_info:
            decode_torrent(encode(single_file_torrent))
        assert exc_info.value.field == field

    def test_file_entry_errors(self, multi_file_torrent):
        """File entries are checked one by one with indexed field names."""
        files = multi_file_torrent[b"info"][b"files"]

        files[1] = b"not a dict"
        with pytest.raises(WrongFieldTypeError) as exc_info:
            decode_torrent(encode(multi_file_torrent))
        assert exc_info.value.field == "info.files[1]"

        files[1] = {b"length": 5}
        with pytest.raises(MissingFieldError) as exc_info:
            decode_torrent(encode(multi_file_torrent))
        assert exc_info.value.field == "info.files[1].path"

        files[1] = {b"length": 5, b"path": []}
        with pytest.raises(WrongFieldTypeError) as exc_info:
            decode_torrent(encode(multi_file_torrent))
        assert exc_info.value.field == "info.files[1].path"

        files[1] = {b"length": 5, b"path": [b"a", 7]}
        with pytest.raises(WrongFieldTypeError) as exc_info:
            decode_torrent(encode(multi_file_torrent))
        assert exc_info.value.field == "info.files[1].path"

        files[1] = {b"length": b"5", b"path": [b"a"]}
        with pytest.raises(WrongFieldTypeError) as exc_info:
            decode_torrent(encode(multi_file_torrent))
        assert exc_info.value.field == "info.files[1].length"

    def test_files_wrong_type(self, multi_file_torrent):
        """A files value that is not a list is rejected."""
        multi_file_torrent[b"info"][b"files"] = {b"length": 1}
        with pytest.raises(WrongFieldTypeError) as exc_info:
            decode_torrent(encode(multi_file_torrent))
        assert exc_info.value.field == "info.files"


class TestTorrentEncode:
    """Test cases for encoding metainfo."""

    def test_single_file_roundtrip_bytes(self, single_file_bytes):
        """Canonical single-file input re-encodes byte for byte."""
        assert encode_torrent(decode_torrent(single_file_bytes)) == single_file_bytes

    def test_multi_file_roundtrip_bytes(self, multi_file_bytes):
        """Canonical multi-file input re-encodes byte for byte."""
        assert encode_torrent(decode_torrent(multi_file_bytes)) == multi_file_bytes

    def test_private_roundtrip(self, single_file_torrent):
        """The private flag survives a round trip."""
        single_file_torrent[b"info"][b"private"] = 1
        data = encode(single_file_torrent)
        assert encode_torrent(decode_torrent(data)) == data

    def test_encode_omits_unset_fields(self):
        """Unset optionals and empty tiers are left out."""
        metadata = TorrentMetadata(
            announce="http://t/announce",
            info=TorrentInfo(name="a", piece_length=1, pieces=[], length=0),
        )
        assert encode_torrent(metadata) == (
            b"d8:announce17:http://t/announce"
            b"4:infod6:lengthi0e4:name1:a12:piece lengthi1e6:pieces0:ee"
        )

    def test_in_memory_record_hash(self, single_file_bytes):
        """Records built in memory hash the canonical info encoding."""
        decoded = decode_torrent(single_file_bytes)
        built = TorrentMetadata(
            announce=decoded.announce,
            info=decoded.info,
        )
        assert built.info_raw is None
        assert built.info_hash == decoded.info_hash

    def test_naive_creation_date_is_utc(self):
        """Naive creation dates are read as UTC, independent of the host zone."""
        metadata = TorrentMetadata(
            announce="http://t/announce",
            creation_date=datetime(2023, 11, 14, 22, 13, 20),
            info=TorrentInfo(name="a", piece_length=1, length=0),
        )

        assert metadata.creation_date.tzinfo is timezone.utc
        assert b"13:creation datei1700000000e" in encode_torrent(metadata)

    def test_aware_creation_date_kept(self):
        """Aware creation dates keep their instant."""
        plus_two = timezone(timedelta(hours=2))
        metadata = TorrentMetadata(
            announce="http://t/announce",
            creation_date=datetime(2023, 11, 15, 0, 13, 20, tzinfo=plus_two),
            info=TorrentInfo(name="a", piece_length=1, length=0),
        )

        assert b"13:creation datei1700000000e" in encode_torrent(metadata)

    def test_encode_text_encoding_error(self):
        """Text that the codec cannot represent is rejected."""
        metadata = TorrentMetadata(
            announce="http://t/announce",
            info=TorrentInfo(name="café", piece_length=1, length=0),
        )
        with pytest.raises(InvalidTextEncodingError):
            encode_torrent(metadata, text_encoding="ascii")


class TestNestingLimit:
    """max_depth reaches the codec through every adapter entry point."""

    def test_decode_torrent_max_depth(self, single_file_bytes):
        """Announce tiers sit at depth three."""
        assert decode_torrent(single_file_bytes, max_depth=3).info.length == 1024
        with pytest.raises(NestingTooDeepError):
            decode_torrent(single_file_bytes, max_depth=2)

    def test_encode_torrent_max_depth(self, multi_file_bytes):
        """File paths sit at depth five."""
        metadata = decode_torrent(multi_file_bytes)
        assert encode_torrent(metadata, max_depth=5) == multi_file_bytes
        with pytest.raises(BencodeEncodeError):
            encode_torrent(metadata, max_depth=4)

    def test_encode_info_max_depth(self, multi_file_torrent, multi_file_bytes):
        """The info dictionary alone is four levels deep with file paths."""
        info = decode_torrent(multi_file_bytes).info
        assert encode_info(info, max_depth=4) == encode(multi_file_torrent[b"info"])
        with pytest.raises(BencodeEncodeError):
            encode_info(info, max_depth=3)

    def test_parser_encode_info_uses_max_depth(self, multi_file_bytes):
        """The parser passes its own limit to the encoder."""
        info = decode_torrent(multi_file_bytes).info
        with pytest.raises(BencodeEncodeError):
            TorrentMetadataParser(max_depth=3).encode_info(info)


class TestTorrentModels:
    """Test cases for the metadata records."""

    def test_info_requires_exactly_one_shape(self):
        """length and files are mutually exclusive."""
        with pytest.raises(PydanticValidationError):
            TorrentInfo(name="a", piece_length=1)
        with pytest.raises(PydanticValidationError):
            TorrentInfo(
                name="a",
                piece_length=1,
                length=1,
                files=[FileEntry(path=["a"], length=1)],
            )

    def test_info_rejects_short_piece_hash(self):
        """Each piece hash must be 20 bytes."""
        with pytest.raises(PydanticValidationError):
            TorrentInfo(name="a", piece_length=1, length=1, pieces=[b"x" * 19])

    def test_file_entry_requires_path(self):
        """File entries need at least one path component."""
        with pytest.raises(PydanticValidationError):
            FileEntry(path=[], length=1)

    def test_records_are_frozen(self, single_file_bytes):
        """Decoded records cannot be mutated."""
        result = decode_torrent(single_file_bytes)
        with pytest.raises(PydanticValidationError):
            result.announce = "http://other/announce"


class TestPieceHash:
    """Test cases for get_piece_hash."""

    def test_get_piece_hash(self, single_file_bytes):
        """Piece hashes are returned by index."""
        parser = TorrentMetadataParser()
        metadata = parser.decode(single_file_bytes)

        assert parser.get_piece_hash(metadata, 0) == bytes(range(20))
        assert parser.get_piece_hash(metadata, 1) == bytes(range(20, 40))

    @pytest.mark.parametrize("index", [-1, 2, 100])
    def test_get_piece_hash_out_of_range(self, single_file_bytes, index):
        """Out-of-range indexes raise TorrentError."""
        parser = TorrentMetadataParser()
        metadata = parser.decode(single_file_bytes)

        with pytest.raises(TorrentError):
            parser.get_piece_hash(metadata, index)
