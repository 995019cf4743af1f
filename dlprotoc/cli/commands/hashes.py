"""
Hashes command implementation.

Maintenance helper for adding a new upstream protoc release to the catalog:
downloads the release archive for every platform, hashes it, and prints
entries ready to append to dlprotoc/data/protoc_versions.json.

The downloads are NOT verified (there is nothing to verify against yet), so
this command is outside the runtime trust boundary. Review the printed hashes
against the upstream release before committing them.
"""

import json
import logging
import textwrap

from dlprotoc.catalog.versions import CatalogEntry, release_url
from dlprotoc.core.download import download_unverified
from dlprotoc.core.platform import Platform
from dlprotoc.core.verification import sha256_hex

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the hashes command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    version = args.protoc_version

    for platform in Platform:
        logger.info(f"Hashing protoc {version} {platform}")
        data = download_unverified(version, platform)
        entry = CatalogEntry(
            version=version,
            platform=platform,
            url=release_url(version, platform),
            sha256=sha256_hex(data),
            member_path=platform.member_path,
        )
        text = json.dumps(entry.to_dict(), indent=2)
        print(f"{textwrap.indent(text, '    ')},")

    return 0
