"""
Entry point for running dlprotoc CLI as a module.

Usage: python -m dlprotoc [command] [options]
"""

from dlprotoc.cli.parser import main

if __name__ == "__main__":
    main()
