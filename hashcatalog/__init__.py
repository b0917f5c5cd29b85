"""Deduplicated catalog of string fingerprints with import provenance."""

from hashcatalog.catalog import HashCatalog, HashEntry
from hashcatalog.database import ImportType, StringType
from hashcatalog.deduplication import ImportResult, StringEntry
from hashcatalog.fingerprints import Fingerprints, compute_fingerprints

__all__ = [
    "HashCatalog",
    "HashEntry",
    "ImportType",
    "StringType",
    "ImportResult",
    "StringEntry",
    "Fingerprints",
    "compute_fingerprints",
]
