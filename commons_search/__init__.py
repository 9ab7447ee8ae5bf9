"""Wikimedia Commons image search with labeled thumbnail composites."""

__version__ = "1.0.0"
