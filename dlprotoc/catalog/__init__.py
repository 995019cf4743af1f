"""
Version catalog for dlprotoc.

This package holds the embedded table of known-good protoc releases.
"""

from .versions import (
    CatalogEntry,
    VersionCatalog,
    default_catalog,
    release_url,
)

__all__ = [
    "CatalogEntry",
    "VersionCatalog",
    "default_catalog",
    "release_url",
]
