"""
Version catalog of known-good protoc releases.

The catalog is the root of the trust model: every (version, platform) pair
that dlprotoc will install is listed here with its download URL and the
SHA-256 of the release archive. The table is loaded from the embedded
data/protoc_versions.json file, is immutable once constructed, and is only
ever matched exactly - there is no "closest version" fallback.

New entries are produced out-of-band by ``dlprotoc hashes VERSION`` and
appended to the data file.
"""

import functools
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from dlprotoc.core.exceptions import CatalogError, VersionNotFoundError
from dlprotoc.core.platform import Platform
from dlprotoc.core.verification import DIGEST_SIZE

logger = logging.getLogger(__name__)

RELEASE_URL_TEMPLATE = (
    "https://github.com/protocolbuffers/protobuf/releases/download/"
    "v{version}/protoc-{version}-{platform}.zip"
)


def release_url(version: str, platform: Platform) -> str:
    """
    Return the upstream release URL for a version. The version is the
    format major.minor, such as "27.0".

    Example:
        >>> release_url("27.0", Platform.LINUX_X86_64)
        'https://github.com/protocolbuffers/protobuf/releases/download/v27.0/protoc-27.0-linux-x86_64.zip'
    """
    return RELEASE_URL_TEMPLATE.format(version=version, platform=platform.tag)


@dataclass(frozen=True)
class CatalogEntry:
    """One known-good protoc release archive."""

    version: str
    """protoc version (e.g. '31.0')"""

    platform: Platform
    """Platform the archive is built for"""

    url: str
    """Download URL for the release archive"""

    sha256: str
    """SHA-256 of the archive as 64 lowercase hex characters"""

    member_path: str
    """Path of the protoc executable inside the archive"""

    def __post_init__(self):
        """Validate entry after initialization."""
        if not self.version:
            raise CatalogError("Catalog entry version cannot be empty")
        if not self.url:
            raise CatalogError(f"Catalog entry {self.key_string} has an empty URL")
        if not self.member_path:
            raise CatalogError(
                f"Catalog entry {self.key_string} has an empty member path"
            )
        try:
            digest = bytes.fromhex(self.sha256)
        except (TypeError, ValueError):
            raise CatalogError(
                f"Catalog entry {self.key_string} has a malformed sha256: {self.sha256!r}"
            )
        if len(digest) != DIGEST_SIZE:
            raise CatalogError(
                f"Catalog entry {self.key_string} has a {len(digest)}-byte sha256, "
                f"expected {DIGEST_SIZE} bytes"
            )
        # Store the canonical lowercase form
        object.__setattr__(self, "sha256", digest.hex())

    @property
    def key(self) -> Tuple[str, Platform]:
        return (self.version, self.platform)

    @property
    def key_string(self) -> str:
        return f"{self.version} {self.platform}"

    @property
    def digest(self) -> bytes:
        """Expected SHA-256 digest as 32 raw bytes."""
        return bytes.fromhex(self.sha256)

    def to_dict(self) -> Dict[str, str]:
        """Serialize to the JSON form used in the catalog data file."""
        return {
            "version": self.version,
            "platform": self.platform.tag,
            "url": self.url,
            "sha256": self.sha256,
            "member_path": self.member_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "CatalogEntry":
        """
        Build an entry from its JSON form.

        Raises:
            CatalogError: If required keys are missing or values are invalid
        """
        missing = [
            key for key in ("version", "platform", "url", "sha256") if key not in data
        ]
        if missing:
            raise CatalogError(
                f"Catalog entry {data!r} is missing keys: {', '.join(missing)}"
            )
        try:
            platform = Platform.from_tag(data["platform"])
        except ValueError as e:
            raise CatalogError(str(e)) from e
        return cls(
            version=data["version"],
            platform=platform,
            url=data["url"],
            sha256=data["sha256"],
            member_path=data.get("member_path", platform.member_path),
        )


class VersionCatalog:
    """
    Immutable table of known-good protoc releases with exact-match lookup.

    Entries are kept in the order given, which for the embedded catalog is
    increasing version order.

    Example:
        >>> catalog = VersionCatalog.load()
        >>> entry = catalog.lookup("31.0", Platform.LINUX_X86_64)
        >>> print(entry.url)
        https://github.com/protocolbuffers/protobuf/releases/download/v31.0/...
    """

    def __init__(self, entries: Iterable[CatalogEntry]):
        """
        Initialize catalog.

        Args:
            entries: Catalog entries

        Raises:
            CatalogError: If the catalog is empty or a (version, platform)
                pair is listed twice
        """
        self._entries: Tuple[CatalogEntry, ...] = tuple(entries)
        if not self._entries:
            raise CatalogError("Version catalog is empty")

        index: Dict[Tuple[str, Platform], CatalogEntry] = {}
        for entry in self._entries:
            if entry.key in index:
                raise CatalogError(f"Duplicate catalog entry: {entry.key_string}")
            index[entry.key] = entry
        self._index = index

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "VersionCatalog":
        """
        Load a catalog from a JSON data file.

        Args:
            path: Optional path to catalog JSON file.
                  If None, uses the embedded protoc_versions.json

        Raises:
            CatalogError: If the file cannot be loaded or is malformed
        """
        path = path or _default_catalog_path()
        if not path.exists():
            raise CatalogError(f"Catalog file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise CatalogError(f"Invalid JSON in catalog file: {e}\nFile: {path}") from e
        except OSError as e:
            raise CatalogError(f"Failed to load catalog file: {e}\nFile: {path}") from e

        if not isinstance(data, dict) or not isinstance(data.get("versions"), list):
            raise CatalogError(
                f"Invalid catalog structure: missing 'versions' list\nFile: {path}"
            )

        catalog = cls(CatalogEntry.from_dict(item) for item in data["versions"])
        logger.debug(f"Loaded catalog with {len(catalog)} entries from {path}")
        return catalog

    def lookup(self, version: str, platform: Platform) -> CatalogEntry:
        """
        Look up the entry for an exact version and platform.

        Raises:
            VersionNotFoundError: If the pair is not in the catalog
        """
        entry = self._index.get((version, platform))
        if entry is None:
            raise VersionNotFoundError(version, platform.tag, self.versions(platform))
        return entry

    def versions(self, platform: Optional[Platform] = None) -> List[str]:
        """
        List known versions in catalog order, without duplicates.

        Args:
            platform: Only include versions available for this platform
        """
        seen: List[str] = []
        for entry in self._entries:
            if platform is not None and entry.platform != platform:
                continue
            if entry.version not in seen:
                seen.append(entry.version)
        return seen

    def platforms(self, version: str) -> List[Platform]:
        """List platforms that have an archive for version."""
        return [entry.platform for entry in self._entries if entry.version == version]

    @property
    def latest_version(self) -> str:
        """The most recent version in the catalog (the last one listed)."""
        return self._entries[-1].version

    @property
    def entries(self) -> Tuple[CatalogEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._index


def _default_catalog_path() -> Path:
    """Get path to the embedded catalog data file."""
    # Path relative to this module: ../data/protoc_versions.json
    return Path(__file__).parent.parent / "data" / "protoc_versions.json"


@functools.lru_cache(maxsize=1)
def default_catalog() -> VersionCatalog:
    """Return the embedded catalog, loaded once per process."""
    return VersionCatalog.load()
