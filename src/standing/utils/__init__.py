"""Shared helpers: validation and error taxonomy."""
