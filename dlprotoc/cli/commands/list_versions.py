"""
List command implementation.

Prints the protoc versions in the embedded catalog, oldest first.
"""

import logging

from dlprotoc.catalog.versions import default_catalog
from dlprotoc.core.platform import Platform

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for an unknown platform tag)
    """
    catalog = default_catalog()

    if args.platform:
        try:
            platform = Platform.from_tag(args.platform)
        except ValueError as e:
            logger.error(str(e))
            return 1
        for version in catalog.versions(platform):
            print(version)
        return 0

    for version in catalog.versions():
        platforms = ", ".join(p.tag for p in catalog.platforms(version))
        print(f"{version}  ({platforms})")
    return 0
