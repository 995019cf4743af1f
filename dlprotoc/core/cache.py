"""
On-disk cache of extracted protoc binaries.

Each (version, platform) pair is installed under its own deterministic
directory together with an install record:

    <cache_dir>/
        protoc-31.0-linux-x86_64/
            bin/protoc
            include/google/protobuf/*.proto
            .dlprotoc-install.json

The record stores the catalog hash of the archive the binary came from and
the hash of the binary itself. A cached binary is only trusted when the
record matches the current catalog entry and the binary on disk still
hashes to the recorded value; a binary without a usable record is a miss.

The cache is shared between build processes. Both the binary and the
record are written with atomic renames, and the record is written after
the binary and the bundled include files, so no file locking is needed.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from dlprotoc.core.filesystem import atomic_write, safe_rmtree
from dlprotoc.core.verification import compute_file_hash, digests_equal

if TYPE_CHECKING:
    from dlprotoc.catalog.versions import CatalogEntry

logger = logging.getLogger(__name__)

RECORD_FILENAME = ".dlprotoc-install.json"
RECORD_FORMAT_VERSION = 2
INSTALL_PREFIX = "protoc-"


class CacheManager:
    """
    Looks up and records verified protoc installs in a cache directory.

    Example:
        >>> cache = CacheManager(Path("build/protoc"))
        >>> cached = cache.check(entry)
        >>> if cached is None:
        ...     binary = extract_member(data, entry.member_path, cache.install_dir(entry))
        ...     cache.record(entry, binary)
    """

    def __init__(self, cache_dir: Path):
        """
        Initialize cache manager.

        Args:
            cache_dir: Directory holding installs (created on first write)
        """
        self.cache_dir = Path(cache_dir)

    def install_dir(self, entry: "CatalogEntry") -> Path:
        """Deterministic install directory for an entry."""
        return self.cache_dir / f"{INSTALL_PREFIX}{entry.version}-{entry.platform.tag}"

    def binary_path(self, entry: "CatalogEntry") -> Path:
        """Path where the entry's executable is installed."""
        return self.install_dir(entry) / entry.member_path

    def record_path(self, entry: "CatalogEntry") -> Path:
        return self.install_dir(entry) / RECORD_FILENAME

    def check(self, entry: "CatalogEntry") -> Optional[Path]:
        """
        Return the cached binary for entry if it can be trusted.

        Args:
            entry: Current catalog entry for the requested version/platform

        Returns:
            Path to the cached binary, or None on a cache miss
        """
        binary = self.binary_path(entry)
        if not binary.is_file():
            logger.debug(f"Cache miss: {binary} does not exist")
            return None

        record = self._load_record(entry)
        if record is None:
            return None

        if record.get("format") != RECORD_FORMAT_VERSION:
            logger.debug(
                f"Cache miss: install record {self.record_path(entry)} has format "
                f"{record.get('format')!r}, expected {RECORD_FORMAT_VERSION}"
            )
            return None

        if record.get("version") != entry.version or record.get(
            "platform"
        ) != entry.platform.tag:
            logger.warning(
                f"Install record at {self.record_path(entry)} is for "
                f"{record.get('version')} {record.get('platform')}, ignoring"
            )
            return None

        archive_sha256 = record.get("archive_sha256")
        if not isinstance(archive_sha256, str) or not digests_equal(
            archive_sha256, entry.sha256
        ):
            logger.warning(
                f"Cached protoc {entry.key_string} was installed from an archive "
                "that no longer matches the catalog hash; re-downloading"
            )
            return None

        binary_sha256 = record.get("binary_sha256")
        try:
            actual = compute_file_hash(binary)
        except OSError as e:
            logger.warning(f"Failed to hash cached binary {binary}: {e}")
            return None
        if not isinstance(binary_sha256, str) or not digests_equal(
            actual, binary_sha256
        ):
            logger.warning(
                f"Cached binary {binary} does not match its install record; re-downloading"
            )
            return None

        logger.debug(f"Cache hit: {binary}")
        return binary

    def record(self, entry: "CatalogEntry", binary_path: Path) -> Path:
        """
        Write the install record for a freshly extracted binary.

        Args:
            entry: Catalog entry the binary was extracted from
            binary_path: Path of the extracted binary

        Returns:
            Path of the record file

        Raises:
            OSError: If hashing the binary or writing the record fails
        """
        record = {
            "format": RECORD_FORMAT_VERSION,
            "version": entry.version,
            "platform": entry.platform.tag,
            "archive_sha256": entry.sha256,
            "binary_sha256": compute_file_hash(Path(binary_path)),
            "source_url": entry.url,
            "installed_at": datetime.now(timezone.utc).isoformat(),
        }
        path = self.record_path(entry)
        atomic_write(path, json.dumps(record, indent=2) + "\n")
        logger.debug(f"Wrote install record {path}")
        return path

    def list_installs(self) -> List[Path]:
        """List install directories present in the cache."""
        if not self.cache_dir.is_dir():
            return []
        return sorted(
            p
            for p in self.cache_dir.iterdir()
            if p.is_dir() and p.name.startswith(INSTALL_PREFIX)
        )

    def clear(self, version: Optional[str] = None) -> int:
        """
        Remove cached installs.

        Args:
            version: Only remove installs of this version (default: all)

        Returns:
            Number of install directories removed

        Raises:
            FilesystemError: If removal fails
        """
        removed = 0
        for install in self.list_installs():
            if version is not None and not install.name.startswith(
                f"{INSTALL_PREFIX}{version}-"
            ):
                continue
            safe_rmtree(install, require_prefix=self.cache_dir)
            logger.info(f"Removed {install}")
            removed += 1
        return removed

    def _load_record(self, entry: "CatalogEntry") -> Optional[Dict[str, Any]]:
        path = self.record_path(entry)
        if not path.is_file():
            logger.debug(f"Cache miss: no install record at {path}")
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable install record {path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed install record {path}")
            return None
        return data
