"""
Unit tests for archive extraction.

Tests cover:
- Extracting the protoc member with executable permissions
- Directory traversal ("zip-slip") rejection
- Malformed archives and missing members
- Atomic replacement and temp file cleanup
"""

import hashlib
import io
import os
import stat
import zipfile
from typing import List
from unittest.mock import patch

import pytest

from dlprotoc.core.archive import (
    ArchiveMember,
    ArchiveReader,
    ZipArchiveReader,
    extract_member,
    resolve_member_path,
)
from dlprotoc.core.exceptions import ArchiveError, InsecureArchiveError
from dlprotoc.core.filesystem import IS_WINDOWS
from tests.helpers import FAKE_PROTOC, build_protoc_zip, build_zip


def _all_files(root) -> List[str]:
    return sorted(
        os.path.relpath(os.path.join(d, f), root)
        for d, _, files in os.walk(root)
        for f in files
    )


class TestZipArchiveReader:
    """Test ZipArchiveReader."""

    def test_open_lists_members(self, protoc_zip):
        with ZipArchiveReader() as reader:
            members = reader.open(protoc_zip)
            names = [m.name for m in members]

        assert "bin/protoc" in names
        assert "include/google/protobuf/duration.proto" in names

    def test_read_member(self, protoc_zip):
        with ZipArchiveReader() as reader:
            members = reader.open(protoc_zip)
            member = next(m for m in members if m.name == "bin/protoc")
            assert reader.read(member) == FAKE_PROTOC

    def test_open_garbage(self):
        with pytest.raises(ArchiveError, match="Invalid zip archive"):
            ZipArchiveReader().open(b"definitely not a zip file")

    def test_read_before_open(self):
        member = ArchiveMember(name="bin/protoc", size=0, is_dir=False)
        with pytest.raises(ArchiveError, match="not open"):
            ZipArchiveReader().read(member)


class TestResolveMemberPath:
    """Test member name validation."""

    def test_nested_name(self, tmp_path):
        target = resolve_member_path("bin/protoc", tmp_path)
        assert target == (tmp_path / "bin" / "protoc").resolve()

    @pytest.mark.parametrize(
        "name",
        [
            "../evil",
            "../../../etc/passwd",
            "bin/../../evil",
            "..\\evil.exe",
            "/etc/passwd",
            "\\windows\\evil.exe",
            "C:/evil.exe",
            "",
            ".",
        ],
    )
    def test_traversal_names_rejected(self, tmp_path, name):
        with pytest.raises(InsecureArchiveError, match="directory traversal"):
            resolve_member_path(name, tmp_path)

    def test_symlinked_directory_escape_rejected(self, tmp_path):
        """Test a name resolving through a symlink outside destination is rejected."""
        if IS_WINDOWS:
            pytest.skip("symlinks need privileges on Windows")
        destination = tmp_path / "dest"
        outside = tmp_path / "outside"
        destination.mkdir()
        outside.mkdir()
        (destination / "bin").symlink_to(outside, target_is_directory=True)

        with pytest.raises(InsecureArchiveError):
            resolve_member_path("bin/protoc", destination)


class TestExtractMember:
    """Test extract_member."""

    def test_extracts_only_the_member(self, tmp_path, protoc_zip):
        """Test only the payload is written, at its archive path."""
        destination = tmp_path / "protoc-31.0-linux-x86_64"

        result = extract_member(protoc_zip, "bin/protoc", destination)

        assert result == (destination / "bin" / "protoc").resolve()
        assert result.read_bytes() == FAKE_PROTOC
        assert _all_files(destination) == [os.path.join("bin", "protoc")]

    def test_extracts_include_files(self, tmp_path, protoc_zip):
        """Test files under an include prefix are written next to the member."""
        destination = tmp_path / "protoc-31.0-linux-x86_64"

        extract_member(
            protoc_zip, "bin/protoc", destination, include_prefixes=("include/",)
        )

        assert _all_files(destination) == [
            os.path.join("bin", "protoc"),
            os.path.join("include", "google", "protobuf", "duration.proto"),
        ]
        proto = destination / "include" / "google" / "protobuf" / "duration.proto"
        assert proto.read_bytes() == b'syntax = "proto3";'

    def test_include_traversal_rejects_archive(self, tmp_path):
        data = build_zip(
            {"bin/protoc": FAKE_PROTOC, "include/../../evil.proto": b"x"}
        )
        destination = tmp_path / "dest"

        with pytest.raises(InsecureArchiveError):
            extract_member(data, "bin/protoc", destination, include_prefixes=("include/",))

        assert _all_files(tmp_path) == []

    def test_round_trip_hash(self, tmp_path):
        """Test the extracted file hashes to the embedded payload's hash."""
        payload = os.urandom(50000)
        data = build_protoc_zip(payload)

        result = extract_member(data, "bin/protoc", tmp_path / "out")

        assert (
            hashlib.sha256(result.read_bytes()).hexdigest()
            == hashlib.sha256(payload).hexdigest()
        )

    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX permissions")
    def test_sets_executable_bit(self, tmp_path, protoc_zip):
        result = extract_member(protoc_zip, "bin/protoc", tmp_path / "out")

        mode = result.stat().st_mode
        assert mode & stat.S_IXUSR
        assert stat.S_IMODE(mode) == 0o755

    def test_traversal_entry_rejects_archive(self, tmp_path):
        """Test an archive with a traversal entry writes nothing anywhere."""
        data = build_zip(
            {"bin/protoc": FAKE_PROTOC, "../../../evil.sh": b"rm -rf /"}
        )
        destination = tmp_path / "nested" / "dest"

        with pytest.raises(InsecureArchiveError):
            extract_member(data, "bin/protoc", destination)

        assert not destination.exists()
        assert _all_files(tmp_path) == []

    def test_traversal_member_path_rejected(self, tmp_path):
        data = build_zip({"../protoc": FAKE_PROTOC})
        destination = tmp_path / "dest"

        with pytest.raises(ArchiveError):
            extract_member(data, "../protoc", destination)

        assert not (tmp_path / "protoc").exists()

    def test_missing_member(self, tmp_path):
        data = build_zip({"readme.txt": b"no protoc here"})

        with pytest.raises(ArchiveError, match="does not contain 'bin/protoc'"):
            extract_member(data, "bin/protoc", tmp_path / "out")

        assert not (tmp_path / "out").exists()

    def test_directory_member(self, tmp_path):
        data = build_zip({"bin/protoc/": b""})

        with pytest.raises(ArchiveError, match="is a directory"):
            extract_member(data, "bin/protoc", tmp_path / "out")

    def test_corrupt_archive(self, tmp_path, protoc_zip):
        """Test truncated archives raise ArchiveError."""
        with pytest.raises(ArchiveError):
            extract_member(protoc_zip[: len(protoc_zip) // 2], "bin/protoc", tmp_path)

    def test_crc_failure(self, tmp_path):
        """Test a member whose data fails its CRC check is not written."""
        payload = b"A" * 1000
        raw = io.BytesIO()
        with zipfile.ZipFile(raw, "w", compression=zipfile.ZIP_STORED) as zf:
            zf.writestr("bin/protoc", payload)
        data = bytearray(raw.getvalue())
        data[data.index(payload)] ^= 0xFF

        with pytest.raises(ArchiveError):
            extract_member(bytes(data), "bin/protoc", tmp_path / "out")

        assert not (tmp_path / "out" / "bin" / "protoc").exists()

    def test_replaces_existing_file(self, tmp_path, protoc_zip):
        destination = tmp_path / "out"
        (destination / "bin").mkdir(parents=True)
        (destination / "bin" / "protoc").write_bytes(b"old")

        result = extract_member(protoc_zip, "bin/protoc", destination)

        assert result.read_bytes() == FAKE_PROTOC

    def test_write_failure_leaves_no_temp_file(self, tmp_path, protoc_zip):
        """Test a failed rename removes the temporary file."""
        destination = tmp_path / "out"

        with patch("dlprotoc.core.filesystem.os.replace", side_effect=OSError("full")):
            with pytest.raises(OSError, match="full"):
                extract_member(protoc_zip, "bin/protoc", destination)

        assert _all_files(destination) == []

    def test_custom_reader(self, tmp_path):
        """Test extraction works through any ArchiveReader."""

        class DictReader(ArchiveReader):
            def __init__(self, files):
                self.files = files

            def open(self, data):
                return [
                    ArchiveMember(name=n, size=len(c), is_dir=False, handle=n)
                    for n, c in self.files.items()
                ]

            def read(self, member):
                return self.files[member.handle]

        reader = DictReader({"bin/protoc": b"payload"})
        result = extract_member(b"", "bin/protoc", tmp_path / "out", reader=reader)

        assert result.read_bytes() == b"payload"
