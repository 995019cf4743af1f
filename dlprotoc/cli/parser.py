"""
dlprotoc CLI argument parser.

This module implements the command-line interface for dlprotoc using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dlprotoc import __version__
from dlprotoc.core.exceptions import DlprotocError

logger = logging.getLogger(__name__)


class CLI:
    """dlprotoc command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="dlprotoc",
            description="dlprotoc - download a verified protoc for your build",
            epilog='Use "dlprotoc COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"dlprotoc {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./dlprotoc.yaml)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_resolve_command(subparsers)
        self._add_list_command(subparsers)
        self._add_hashes_command(subparsers)
        self._add_clear_command(subparsers)

        return parser

    def _add_resolve_command(self, subparsers):
        """Add 'resolve' subcommand."""
        parser = subparsers.add_parser(
            "resolve",
            help="Install protoc and print its path",
            description="Download, verify and extract protoc (or reuse the cache)",
        )
        parser.add_argument(
            "protoc_version",
            nargs="?",
            metavar="VERSION",
            help="protoc version (default: configured or latest known)",
        )
        parser.add_argument(
            "--cache-dir",
            type=Path,
            metavar="DIR",
            help="Cache directory (default: OUT_DIR/protoc or ~/.dlprotoc)",
        )

    def _add_list_command(self, subparsers):
        """Add 'list' subcommand."""
        parser = subparsers.add_parser(
            "list",
            help="List known protoc versions",
            description="List protoc versions in the embedded catalog",
        )
        parser.add_argument(
            "--platform",
            metavar="TAG",
            help="Only list versions for this platform tag (e.g. linux-x86_64)",
        )

    def _add_hashes_command(self, subparsers):
        """Add 'hashes' subcommand."""
        parser = subparsers.add_parser(
            "hashes",
            help="Print catalog entries for a new protoc release",
            description=(
                "Download a protoc release for every platform and print "
                "catalog entries ready to append to protoc_versions.json"
            ),
        )
        parser.add_argument(
            "protoc_version", metavar="VERSION", help="protoc version e.g. 31.1"
        )

    def _add_clear_command(self, subparsers):
        """Add 'clear' subcommand."""
        parser = subparsers.add_parser(
            "clear",
            help="Remove cached protoc installs",
            description="Remove protoc installs from the cache directory",
        )
        parser.add_argument(
            "--only",
            dest="protoc_version",
            metavar="VERSION",
            help="Only remove installs of this version",
        )
        parser.add_argument(
            "--cache-dir",
            type=Path,
            metavar="DIR",
            help="Cache directory (default: OUT_DIR/protoc or ~/.dlprotoc)",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except DlprotocError as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                logger.debug("Traceback:", exc_info=True)
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            stream=sys.stderr,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "resolve": "dlprotoc.cli.commands.resolve",
            "list": "dlprotoc.cli.commands.list_versions",
            "hashes": "dlprotoc.cli.commands.hashes",
            "clear": "dlprotoc.cli.commands.clear",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
