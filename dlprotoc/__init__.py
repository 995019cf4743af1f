"""
dlprotoc - downloads a verified protoc binary for builds.

Build scripts call resolve_and_extract() (or download_protoc() inside a
build that sets OUT_DIR) so the Protocol Buffers compiler does not need to
be installed on the build machine:

    from dlprotoc import resolve_and_extract

    protoc = resolve_and_extract("31.0")
    subprocess.run([protoc, "--python_out=gen", "example.proto"], check=True)

Only versions listed in the embedded catalog are installed, and every
download is checked against the catalog's SHA-256 before it is extracted.
"""

from dlprotoc.catalog import CatalogEntry, VersionCatalog, default_catalog
from dlprotoc.core.exceptions import (
    ArchiveError,
    CatalogError,
    ConfigError,
    DlprotocError,
    FilesystemError,
    HashMismatchError,
    InsecureArchiveError,
    NetworkError,
    UnsupportedPlatformError,
    VersionNotFoundError,
)
from dlprotoc.core.platform import Platform, detect_platform, identify
from dlprotoc.resolver import (
    ExtractionResult,
    Resolver,
    download_protoc,
    resolve_and_extract,
)

__version__ = "0.4.5"

__all__ = [
    "resolve_and_extract",
    "download_protoc",
    "Resolver",
    "ExtractionResult",
    "Platform",
    "identify",
    "detect_platform",
    "CatalogEntry",
    "VersionCatalog",
    "default_catalog",
    "DlprotocError",
    "UnsupportedPlatformError",
    "VersionNotFoundError",
    "NetworkError",
    "HashMismatchError",
    "ArchiveError",
    "InsecureArchiveError",
    "FilesystemError",
    "CatalogError",
    "ConfigError",
]
