"""
Network fetcher for protoc release archives.

This module retrieves a complete resource into memory with:
- HTTP/HTTPS downloads with TLS verification (via requests)
- Timeout handling delegated to requests
- Detection of truncated bodies (fewer bytes than Content-Length)

Failures are not retried. They surface as
NetworkError and the calling build decides whether to retry.
"""

import logging
from typing import Optional

import requests
from requests.exceptions import RequestException

from dlprotoc.core.exceptions import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
"""Default connect/read timeout in seconds."""

CHUNK_SIZE = 64 * 1024


def fetch(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> bytes:
    """
    Download the full resource at url into memory.

    Args:
        url: URL to download from
        timeout: Request timeout in seconds
        session: Optional requests session to reuse

    Returns:
        The complete response body

    Raises:
        NetworkError: If the request fails, returns an error status, or the
            body is shorter than the advertised Content-Length
        ValueError: If url is empty

    Example:
        >>> data = fetch("https://example.com/protoc.zip")
    """
    if not url:
        raise ValueError("URL cannot be empty")

    getter = session.get if session is not None else requests.get
    logger.info(f"Downloading from {url}")

    try:
        response = getter(url, stream=True, timeout=timeout, allow_redirects=True)
        try:
            response.raise_for_status()
            chunks = []
            received = 0
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    chunks.append(chunk)
                    received += len(chunk)
            content_length = response.headers.get("content-length")
            encoded = response.headers.get("content-encoding", "identity").lower()
        finally:
            response.close()
    except RequestException as e:
        raise NetworkError(url, str(e)) from e

    # Content-Length counts encoded bytes; only compare for identity bodies
    if content_length is not None and encoded == "identity":
        try:
            expected = int(content_length)
        except ValueError:
            raise NetworkError(url, f"invalid Content-Length header: {content_length!r}")
        if received != expected:
            raise NetworkError(
                url, f"incomplete download: received {received} of {expected} bytes"
            )

    logger.debug(f"Downloaded {received} bytes from {url}")
    return b"".join(chunks)


def download_unverified(
    version: str, platform, timeout: float = DEFAULT_TIMEOUT
) -> bytes:
    """
    Download a protoc release archive without verifying its hash.

    Only the catalog maintenance command uses this, to compute hashes for a
    new upstream release. Resolution never calls it.

    Args:
        version: protoc version (e.g. '31.0')
        platform: Platform to download for
        timeout: Request timeout in seconds

    Raises:
        NetworkError: If the download fails
    """
    from dlprotoc.catalog.versions import release_url

    return fetch(release_url(version, platform), timeout=timeout)
