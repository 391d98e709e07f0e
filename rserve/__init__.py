"""Serve private files through signed, expiring URLs."""

__version__ = "0.1.0"
