"""
Pytest configuration and shared fixtures for dlprotoc tests.
"""

from pathlib import Path

import pytest

from dlprotoc.catalog.versions import CatalogEntry, VersionCatalog
from dlprotoc.core.platform import clear_platform_cache
from tests.helpers import FakeFetcher, build_protoc_zip, make_entry


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_platform_cache():
    """Keep platform detection from leaking between tests."""
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture
def protoc_zip() -> bytes:
    """Archive bytes of a fake protoc release."""
    return build_protoc_zip()


@pytest.fixture
def catalog_entry(protoc_zip: bytes) -> CatalogEntry:
    """Catalog entry matching the protoc_zip fixture."""
    return make_entry(protoc_zip)


@pytest.fixture
def sample_catalog(catalog_entry: CatalogEntry) -> VersionCatalog:
    """Catalog with one older fake version and the protoc_zip entry."""
    older = make_entry(build_protoc_zip(b"#!/bin/sh\necho libprotoc 30.2\n"), "30.2")
    return VersionCatalog([older, catalog_entry])


@pytest.fixture
def fake_fetcher(catalog_entry: CatalogEntry, protoc_zip: bytes) -> FakeFetcher:
    """Fetcher serving protoc_zip at the catalog entry's URL."""
    return FakeFetcher({catalog_entry.url: protoc_zip})


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Empty cache directory."""
    path = tmp_path / "cache"
    path.mkdir()
    return path
