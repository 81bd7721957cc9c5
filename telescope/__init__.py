"""Telescope - natural-language local file search."""

__version__ = "0.1.0"
