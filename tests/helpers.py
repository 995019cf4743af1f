"""
Test data builders for dlprotoc tests.

Archives are built in memory with zipfile so no test touches the network.
"""

import hashlib
import io
import zipfile
from typing import Dict, List

from dlprotoc.catalog.versions import CatalogEntry
from dlprotoc.core.platform import Platform

TEST_VERSION = "31.0"
TEST_PLATFORM = Platform.LINUX_X86_64
FAKE_PROTOC = f"#!/bin/sh\necho libprotoc {TEST_VERSION}\n".encode()


def build_zip(members: Dict[str, bytes]) -> bytes:
    """Build an in-memory zip archive from name -> content."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def build_protoc_zip(payload: bytes = FAKE_PROTOC) -> bytes:
    """Build an archive laid out like an upstream protoc release."""
    return build_zip(
        {
            "bin/protoc": payload,
            "include/google/protobuf/duration.proto": b'syntax = "proto3";',
            "readme.txt": b"Protocol Buffers - Google's data interchange format",
        }
    )


def make_entry(
    data: bytes,
    version: str = TEST_VERSION,
    platform: Platform = TEST_PLATFORM,
) -> CatalogEntry:
    """Build a catalog entry whose hash matches data."""
    return CatalogEntry(
        version=version,
        platform=platform,
        url=f"https://example.com/protoc-{version}-{platform.tag}.zip",
        sha256=hashlib.sha256(data).hexdigest(),
        member_path=platform.member_path,
    )


class FakeFetcher:
    """Fetcher serving fixed bytes per URL and counting calls."""

    def __init__(self, responses: Dict[str, bytes]):
        self.responses = dict(responses)
        self.calls: List[str] = []

    def __call__(self, url: str) -> bytes:
        self.calls.append(url)
        return self.responses[url]
