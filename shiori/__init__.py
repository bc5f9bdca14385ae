"""Shiori - personal library tracker with catalog search and bulk import."""

__version__ = "1.0.0"
