"""
dlprotoc CLI module.

This module provides the command-line interface for dlprotoc.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]
