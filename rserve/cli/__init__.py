"""Command line interface for rserve."""
