"""
Resolution of a protoc version into a verified, executable binary.

This module orchestrates the pipeline:
1. Identify the host platform
2. Look up the (version, platform) entry in the catalog
3. Return the cached binary if its install record verifies
4. Download the release archive
5. Verify the archive's SHA-256 against the catalog
6. Extract the protoc executable and its include/ protos atomically
7. Record the install so the next call skips the network

Any failure aborts the whole sequence with the stage's exception; nothing
unverified is ever extracted or cached.
"""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from dlprotoc.catalog.versions import CatalogEntry, VersionCatalog, default_catalog
from dlprotoc.core.archive import ArchiveReader, ZipArchiveReader, extract_member
from dlprotoc.core.cache import CacheManager
from dlprotoc.core.config import (
    BUILD_OUT_ENV_VAR,
    ResolverConfig,
    default_cache_dir,
    load_config,
)
from dlprotoc.core.download import DEFAULT_TIMEOUT, fetch
from dlprotoc.core.exceptions import ConfigError, FilesystemError
from dlprotoc.core.platform import Platform, detect_platform
from dlprotoc.core.verification import verify_digest

logger = logging.getLogger(__name__)

# Archive directory holding the well-known .proto files protoc finds via
# <bin>/../include
INCLUDE_PREFIX = "include/"

# Environment variable pointing build tools at protoc
PROTOC_ENV_VAR = "PROTOC"

Fetcher = Callable[[str], bytes]


@dataclass(frozen=True)
class ExtractionResult:
    """Result of resolving a protoc version."""

    binary_path: Path
    """Path to the ready-to-run protoc executable"""

    verified: bool
    """Whether the binary was verified against the catalog (always True)"""

    version: str
    """Resolved protoc version"""

    platform: Platform
    """Platform the binary was built for"""

    was_cached: bool
    """Whether the binary came from the cache (no download needed)"""


class Resolver:
    """
    Resolves protoc versions into verified binaries in a cache directory.

    Example:
        >>> resolver = Resolver(Path("build/protoc"))
        >>> result = resolver.resolve("31.0")
        >>> print(f"protoc at: {result.binary_path}")
    """

    def __init__(
        self,
        cache_dir: Union[str, Path],
        catalog: Optional[VersionCatalog] = None,
        fetcher: Optional[Fetcher] = None,
        platform: Optional[Platform] = None,
        timeout: float = DEFAULT_TIMEOUT,
        reader_factory: Callable[[], ArchiveReader] = ZipArchiveReader,
    ):
        """
        Initialize resolver.

        Args:
            cache_dir: Directory where binaries are installed
            catalog: Version catalog (default: embedded catalog)
            fetcher: Callable returning the bytes at a URL (default: HTTP fetch)
            platform: Platform to resolve for (default: detected host platform)
            timeout: Download timeout in seconds for the default fetcher
            reader_factory: Creates the archive reader used for extraction
        """
        self.cache = CacheManager(Path(cache_dir))
        self.catalog = catalog if catalog is not None else default_catalog()
        self.fetcher = fetcher or (lambda url: fetch(url, timeout=timeout))
        self._platform = platform
        self.reader_factory = reader_factory

    @classmethod
    def from_config(cls, config: ResolverConfig, **kwargs) -> "Resolver":
        """Create a resolver from a ResolverConfig."""
        return cls(config.cache_dir, timeout=config.timeout, **kwargs)

    @property
    def platform(self) -> Platform:
        """
        Platform being resolved for.

        Raises:
            UnsupportedPlatformError: If the host platform is unsupported
        """
        if self._platform is None:
            return detect_platform()
        return self._platform

    def resolve(self, version: Optional[str] = None) -> ExtractionResult:
        """
        Resolve a protoc version into a verified binary.

        Args:
            version: protoc version (e.g. '31.0'). None means the latest
                version in the catalog.

        Returns:
            ExtractionResult for the installed binary

        Raises:
            UnsupportedPlatformError: If the host platform is unsupported
            VersionNotFoundError: If the version is not in the catalog
            NetworkError: If the download fails
            HashMismatchError: If the download does not match the catalog
            ArchiveError: If the archive is malformed or unsafe
            FilesystemError: If writing to the cache directory fails
        """
        platform = self.platform
        if version is None:
            version = self.catalog.latest_version
        entry = self.catalog.lookup(version, platform)

        cached = self.cache.check(entry)
        if cached is not None:
            logger.info(f"Using cached protoc {entry.key_string}: {cached}")
            return ExtractionResult(
                binary_path=cached,
                verified=True,
                version=entry.version,
                platform=platform,
                was_cached=True,
            )

        binary = self._install(entry)
        return ExtractionResult(
            binary_path=binary,
            verified=True,
            version=entry.version,
            platform=platform,
            was_cached=False,
        )

    def _install(self, entry: CatalogEntry) -> Path:
        """Download, verify, extract and record one catalog entry."""
        logger.info(f"Downloading protoc {entry.key_string}")
        start = time.time()
        data = self.fetcher(entry.url)
        logger.debug(f"Download complete in {time.time() - start:.2f}s")

        verify_digest(data, entry.digest, label=f"protoc {entry.key_string}")
        logger.info(f"Verified SHA-256 of {entry.url}")

        install_dir = self.cache.install_dir(entry)
        try:
            binary = extract_member(
                data,
                entry.member_path,
                install_dir,
                reader=self.reader_factory(),
                include_prefixes=(INCLUDE_PREFIX,),
            )
            self.cache.record(entry, binary)
        except OSError as e:
            raise FilesystemError(
                f"Failed to install protoc {entry.key_string} into {install_dir}: {e}"
            ) from e

        logger.info(f"Installed protoc {entry.key_string} at {binary}")
        return binary


def resolve_and_extract(
    version: Optional[str] = None, cache_dir: Optional[Union[str, Path]] = None
) -> Path:
    """
    Resolve a protoc version and return the path of a verified binary.

    This is the entry point build scripts call.

    Args:
        version: protoc version (default: latest in the catalog)
        cache_dir: Cache directory (default: OUT_DIR/protoc or ~/.dlprotoc)

    Returns:
        Path to the protoc executable

    Example:
        >>> from dlprotoc import resolve_and_extract
        >>> protoc = resolve_and_extract("31.0")
    """
    resolver = Resolver(cache_dir if cache_dir is not None else default_cache_dir())
    return resolver.resolve(version).binary_path


def download_protoc(version: Optional[str] = None) -> Path:
    """
    Install protoc into the build output directory and export PROTOC.

    Reads the output directory from the OUT_DIR environment variable,
    resolves protoc into OUT_DIR/protoc, and sets the PROTOC environment
    variable so code generators that honor it find the binary.

    Args:
        version: protoc version (default: configured version or latest)

    Returns:
        Path to the protoc executable

    Raises:
        ConfigError: If OUT_DIR is not set
    """
    out_dir = os.environ.get(BUILD_OUT_ENV_VAR)
    if not out_dir:
        raise ConfigError(
            f"env var {BUILD_OUT_ENV_VAR} is not set; "
            "download_protoc() must run inside a build script"
        )

    config = load_config()
    config.cache_dir = Path(out_dir) / "protoc"
    resolver = Resolver.from_config(config)
    result = resolver.resolve(version if version is not None else config.version)

    os.environ[PROTOC_ENV_VAR] = str(result.binary_path)
    logger.debug(f"Set {PROTOC_ENV_VAR}={result.binary_path}")
    return result.binary_path
