"""Prospector: debounced, local-first editing of map prospects."""

__version__ = "0.1.0"
