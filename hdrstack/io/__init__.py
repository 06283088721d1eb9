"""Capture-folder watching, debouncing and burst grouping."""
