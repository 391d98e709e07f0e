"""Shared utilities for signing and key handling."""
