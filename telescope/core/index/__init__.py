"""Filesystem index backends."""

from .base import IndexBackend
from .spotlight import SpotlightIndex

__all__ = ["IndexBackend", "SpotlightIndex"]
