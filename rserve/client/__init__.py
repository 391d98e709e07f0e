"""Client helpers for rserve."""

from .link_check import LinkChecker

__all__ = [
    "LinkChecker",
]
