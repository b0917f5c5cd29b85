"""
Input normalization utilities.

These modules canonicalize raw input strings before they are fingerprinted.
"""

from .strings import normalize_string, replace_lone_surrogates

__all__ = [
    'normalize_string',
    'replace_lone_surrogates',
]
