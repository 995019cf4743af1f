"""
Core functionality for dlprotoc.

This package contains the leaf components that resolution is built from:
platform detection, downloading, hash verification, archive extraction,
the on-disk cache and configuration.
"""

from .archive import (
    ArchiveMember,
    ArchiveReader,
    ZipArchiveReader,
    extract_member,
    resolve_member_path,
)

from .cache import CacheManager

from .config import (
    ResolverConfig,
    load_config,
    default_cache_dir,
    get_global_cache_dir,
)

from .download import fetch, download_unverified

from .platform import (
    Platform,
    identify,
    detect_platform,
    clear_platform_cache,
)

from .verification import (
    sha256_digest,
    sha256_hex,
    compute_file_hash,
    digests_equal,
    verify_digest,
)

from .exceptions import (
    DlprotocError,
    ConfigError,
    UnsupportedPlatformError,
    CatalogError,
    VersionNotFoundError,
    NetworkError,
    HashMismatchError,
    ArchiveError,
    InsecureArchiveError,
    FilesystemError,
)

__all__ = [
    "ArchiveMember",
    "ArchiveReader",
    "ZipArchiveReader",
    "extract_member",
    "resolve_member_path",
    "CacheManager",
    "ResolverConfig",
    "load_config",
    "default_cache_dir",
    "get_global_cache_dir",
    "fetch",
    "download_unverified",
    "Platform",
    "identify",
    "detect_platform",
    "clear_platform_cache",
    "sha256_digest",
    "sha256_hex",
    "compute_file_hash",
    "digests_equal",
    "verify_digest",
    "DlprotocError",
    "ConfigError",
    "UnsupportedPlatformError",
    "CatalogError",
    "VersionNotFoundError",
    "NetworkError",
    "HashMismatchError",
    "ArchiveError",
    "InsecureArchiveError",
    "FilesystemError",
]
