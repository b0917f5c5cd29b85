"""Utility modules for the hash catalog."""

from hashcatalog.utils.logging import setup_logging

__all__ = [
    "setup_logging",
]
