"""
Unit tests for filesystem utilities.
"""

import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from dlprotoc.core.exceptions import FilesystemError
from dlprotoc.core.filesystem import (
    IS_WINDOWS,
    atomic_write,
    is_relative_to,
    safe_rmtree,
)


class TestIsRelativeTo:
    def test_child(self):
        assert is_relative_to(Path("/home/user/project/file.txt"), Path("/home/user"))

    def test_sibling(self):
        assert not is_relative_to(Path("/home/other"), Path("/home/user"))


class TestAtomicWrite:
    """Tests for atomic_write."""

    def test_write_bytes(self, tmp_path):
        target = tmp_path / "sub" / "binary.dat"

        result = atomic_write(target, b"\x00\x01\x02")

        assert result == target
        assert target.read_bytes() == b"\x00\x01\x02"

    def test_write_text(self, tmp_path):
        target = tmp_path / "record.json"
        atomic_write(target, '{"key": "value"}')
        assert target.read_text(encoding="utf-8") == '{"key": "value"}'

    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX permissions")
    def test_mode_applied(self, tmp_path):
        target = tmp_path / "protoc"
        atomic_write(target, b"#!/bin/sh\n", mode=0o755)
        assert stat.S_IMODE(target.stat().st_mode) == 0o755

    def test_overwrites_existing(self, tmp_path):
        target = tmp_path / "file"
        target.write_bytes(b"old")
        atomic_write(target, b"new")
        assert target.read_bytes() == b"new"

    def test_failure_keeps_original_and_cleans_temp(self, tmp_path):
        """Test a failed rename leaves the original and no temp files."""
        target = tmp_path / "file"
        target.write_bytes(b"original")

        with patch("dlprotoc.core.filesystem.os.replace", side_effect=OSError("boom")):
            with pytest.raises(OSError, match="boom"):
                atomic_write(target, b"replacement")

        assert target.read_bytes() == b"original"
        assert [p.name for p in tmp_path.iterdir()] == ["file"]


class TestSafeRmtree:
    """Tests for safe_rmtree."""

    def test_removes_directory(self, tmp_path):
        victim = tmp_path / "cache" / "protoc-31.0-linux-x86_64"
        (victim / "bin").mkdir(parents=True)
        (victim / "bin" / "protoc").write_bytes(b"x")

        safe_rmtree(victim, require_prefix=tmp_path / "cache")

        assert not victim.exists()

    def test_refuses_outside_prefix(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        with pytest.raises(ValueError, match="Refusing to delete"):
            safe_rmtree(tmp_path / "a", require_prefix=tmp_path / "b")

    def test_refuses_prefix_itself(self, tmp_path):
        with pytest.raises(ValueError, match="Refusing to delete"):
            safe_rmtree(tmp_path, require_prefix=tmp_path)

    def test_missing_is_noop(self, tmp_path):
        safe_rmtree(tmp_path / "missing", require_prefix=tmp_path)

    def test_file_is_error(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("x")
        with pytest.raises(FilesystemError, match="not a directory"):
            safe_rmtree(path)
