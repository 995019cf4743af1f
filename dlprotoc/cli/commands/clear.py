"""
Clear command implementation.

Removes protoc installs from the cache directory.
"""

import logging

from dlprotoc.core.cache import CacheManager
from dlprotoc.core.config import load_config

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the clear command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = load_config(args.config)
    cache_dir = args.cache_dir or config.cache_dir

    removed = CacheManager(cache_dir).clear(args.protoc_version)
    logger.info(f"Removed {removed} cached install(s) from {cache_dir}")
    return 0
