"""Trailing 30-day views/sessions resolution for content items."""

__version__ = "0.1.0"
