"""
Deduplicating import components.

These modules merge batches of strings into the catalog, replacing
placeholder records whose source string has been recovered.
"""

from hashcatalog.deduplication.pipeline import (
    DedupImportPipeline,
    ImportResult,
    StringEntry,
    adopt_placeholder_ids,
)

__all__ = [
    "DedupImportPipeline",
    "ImportResult",
    "StringEntry",
    "adopt_placeholder_ids",
]
