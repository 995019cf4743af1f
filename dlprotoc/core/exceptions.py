"""
Centralized exception hierarchy for dlprotoc.

Every stage of resolution raises its own exception type so that a failing
build names the stage that failed: platform detection, catalog lookup,
download, hash verification, archive extraction or filesystem writes.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class DlprotocError(Exception):
    """Base exception for all dlprotoc errors."""

    pass


class ConfigError(DlprotocError):
    """Invalid or missing configuration."""

    pass


# ============================================================================
# Platform and Catalog Exceptions
# ============================================================================


class UnsupportedPlatformError(DlprotocError):
    """Raised when the host OS/architecture has no protoc platform tag."""

    def __init__(self, system: str, machine: str):
        self.system = system
        self.machine = machine
        super().__init__(
            f"Unsupported platform: {system}/{machine}. "
            "protoc binaries are available for linux, osx and windows on x86_64 and aarch64."
        )


class CatalogError(DlprotocError):
    """Raised when the version catalog is malformed (a catalog construction bug)."""

    pass


class VersionNotFoundError(DlprotocError):
    """Raised when the requested version is not in the catalog for a platform."""

    def __init__(self, version: str, platform: str, available: Optional[list] = None):
        self.version = version
        self.platform = platform
        self.available = list(available or [])
        msg = f"Unknown protoc version {version} for {platform}"
        if self.available:
            msg += f" (known versions: {', '.join(self.available)})"
        super().__init__(msg)


# ============================================================================
# Download and Verification Exceptions
# ============================================================================


class NetworkError(DlprotocError):
    """Raised when fetching an archive fails or returns an incomplete body."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed downloading protoc from url: {url}: {reason}")


class HashMismatchError(DlprotocError):
    """Raised when downloaded bytes do not match the catalog digest."""

    def __init__(self, label: str, expected: str, actual: str):
        self.label = label
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Hash mismatch for {label}: expected sha256 {expected}, got {actual}"
        )


# ============================================================================
# Extraction and Filesystem Exceptions
# ============================================================================


class ArchiveError(DlprotocError):
    """Raised when an archive is malformed or lacks the expected member."""

    pass


class InsecureArchiveError(ArchiveError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


class FilesystemError(DlprotocError):
    """Raised when writing or renaming files in the cache directory fails."""

    pass
