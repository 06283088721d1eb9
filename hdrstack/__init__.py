"""Bracketed-exposure merging and capture-folder watching."""

__version__ = "0.1.0"
