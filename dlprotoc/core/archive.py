"""
Archive extraction for protoc release archives.

The protoc executable is extracted together with the files under chosen
prefixes (the bundled include/ protos); nothing else in the archive is
written. Before anything is written, every member name in the archive is validated so that
an archive containing a directory traversal entry ("zip-slip") is rejected
as a whole.

The archive format sits behind the ArchiveReader interface; ZipArchiveReader
is the implementation used for upstream releases.
"""

import io
import logging
import zipfile
import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, List, Optional, Sequence, Union

from dlprotoc.core.exceptions import ArchiveError, InsecureArchiveError
from dlprotoc.core.filesystem import EXECUTABLE_MODE, atomic_write, is_relative_to

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveMember:
    """One entry of an opened archive."""

    name: str
    """Member name as stored in the archive"""

    size: int
    """Uncompressed size in bytes"""

    is_dir: bool
    """Whether the entry is a directory"""

    handle: Any = None
    """Reader-specific handle used by ArchiveReader.read()"""


class ArchiveReader(ABC):
    """
    Abstract interface for reading entries out of an in-memory archive.

    Readers are used as context managers:

        >>> with ZipArchiveReader() as reader:
        ...     members = reader.open(data)
        ...     payload = reader.read(members[0])
    """

    @abstractmethod
    def open(self, data: bytes) -> List[ArchiveMember]:
        """
        Open an archive and list its entries.

        Raises:
            ArchiveError: If the data is not a valid archive
        """
        pass

    @abstractmethod
    def read(self, member: ArchiveMember) -> bytes:
        """
        Read the full contents of one entry.

        Raises:
            ArchiveError: If the entry cannot be decompressed
        """
        pass

    def close(self) -> None:
        """Release resources held by the reader."""
        pass

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ZipArchiveReader(ArchiveReader):
    """ArchiveReader for zip archives (stored or DEFLATE compressed)."""

    def __init__(self):
        self._zip: Optional[zipfile.ZipFile] = None

    def open(self, data: bytes) -> List[ArchiveMember]:
        self.close()
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data), "r")
            infos = self._zip.infolist()
        except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError) as e:
            raise ArchiveError(f"Invalid zip archive: {e}") from e

        return [
            ArchiveMember(
                name=info.filename,
                size=info.file_size,
                is_dir=info.is_dir(),
                handle=info,
            )
            for info in infos
        ]

    def read(self, member: ArchiveMember) -> bytes:
        if self._zip is None:
            raise ArchiveError("Archive is not open")
        try:
            return self._zip.read(member.handle)
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
            raise ArchiveError(f"Failed to read '{member.name}' from archive: {e}") from e

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None


def resolve_member_path(name: str, destination: Path) -> Path:
    """
    Resolve where an archive member would be written under destination.

    Rejects absolute names, drive letters, parent-directory segments, and
    any name whose canonical path is not strictly inside destination.

    Args:
        name: Member name from archive
        destination: Extraction destination

    Returns:
        Canonical output path for the member

    Raises:
        InsecureArchiveError: If the name attempts directory traversal
    """
    normalized = name.replace("\\", "/")
    parts = PurePosixPath(normalized).parts

    is_suspicious = (
        not normalized
        or normalized.startswith("/")
        or (len(normalized) > 1 and normalized[1] == ":")  # Windows drive letter
        or ".." in parts
    )

    root = destination.resolve()
    target = (root / normalized).resolve()

    if is_suspicious or target == root or not is_relative_to(target, root):
        raise InsecureArchiveError(
            f"Archive member '{name}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )
    return target


def extract_member(
    data: bytes,
    member_path: str,
    destination: Union[str, Path],
    reader: Optional[ArchiveReader] = None,
    include_prefixes: Sequence[str] = (),
) -> Path:
    """
    Extract a single member of an archive to destination.

    The member is written atomically (temp file + rename) with executable
    permissions, at destination / member_path. Regular files whose names
    start with one of include_prefixes are written alongside it, each
    atomically, before the member itself.

    Args:
        data: Archive bytes (already hash-verified)
        member_path: Name of the member to extract (e.g. 'bin/protoc')
        destination: Directory to extract into
        reader: Archive reader to use (default: ZipArchiveReader)
        include_prefixes: Name prefixes of additional files to extract
            (e.g. ('include/',) for the well-known .proto files)

    Returns:
        Path of the extracted member

    Raises:
        InsecureArchiveError: If any member name attempts directory traversal
        ArchiveError: If the archive is malformed or lacks member_path
        OSError: If writing a file fails

    Example:
        >>> extract_member(zip_bytes, "bin/protoc", Path("out/protoc-31.0-linux-x86_64"))
        PosixPath('out/protoc-31.0-linux-x86_64/bin/protoc')
    """
    destination = Path(destination)
    reader = reader or ZipArchiveReader()

    with reader:
        members = reader.open(data)

        # Validate all paths first
        targets = {}
        for member in members:
            targets[member.name] = resolve_member_path(member.name, destination)

        wanted = _normalize(member_path)
        matches = [m for m in members if _normalize(m.name) == wanted]
        if not matches:
            raise ArchiveError(f"Archive does not contain '{member_path}'")
        if len(matches) > 1:
            raise ArchiveError(f"Archive contains '{member_path}' more than once")
        member = matches[0]
        if member.is_dir:
            raise ArchiveError(f"Archive member '{member_path}' is a directory")

        extras = [
            (targets[m.name], reader.read(m))
            for m in members
            if not m.is_dir
            and m is not member
            and any(_normalize(m.name).startswith(p) for p in include_prefixes)
        ]
        payload = reader.read(member)

    for target, content in extras:
        atomic_write(target, content)
    if extras:
        logger.debug(f"Extracted {len(extras)} supporting files to {destination}")

    target = resolve_member_path(member_path, destination)
    atomic_write(target, payload, mode=EXECUTABLE_MODE)
    logger.debug(f"Extracted {member_path} ({len(payload)} bytes) to {target}")
    return target


def _normalize(name: str) -> str:
    return name.replace("\\", "/").rstrip("/")
