"""Command implementations for the dlprotoc CLI."""
