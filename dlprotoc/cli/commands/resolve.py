"""
Resolve command implementation.

Installs protoc (or reuses the cache) and prints the binary path on stdout,
so build scripts can capture it: PROTOC=$(dlprotoc resolve 31.0)
"""

import logging

from dlprotoc.core.config import load_config
from dlprotoc.resolver import Resolver

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the resolve command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = load_config(args.config)
    if args.cache_dir:
        config.cache_dir = args.cache_dir
    version = (
        args.protoc_version if args.protoc_version is not None else config.version
    )

    logger.debug(
        f"Resolving protoc {'latest' if version is None else version} "
        f"into {config.cache_dir}"
    )
    result = Resolver.from_config(config).resolve(version)

    print(result.binary_path)
    return 0
