"""Kaeva fact-check service."""

__version__ = "2.0.0"
