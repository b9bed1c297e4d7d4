"""Gamebook: interactive-fiction story engine and console player."""

__version__ = "0.1.0"
