"""
Deduplicating import of strings into the hash catalog.

One run merges a batch of strings inside the caller's transaction:

1. Stage: hash every distinct input string into ``staged_hashes``
2. Drop staged strings the catalog already knows, remembering their rows
3. Find placeholders (rows without a string) matching staged fingerprints
4. Replace those placeholders with the staged rows, keeping their ids
5. Move the placeholders' import and archive links to the new rows
6. Create the import and link every staged row and every known row to it

Nothing is committed here. If any step raises, the caller rolls back and the
catalog is left exactly as it was.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime
from itertools import islice
from typing import Optional

from loguru import logger
from sqlalchemy import Integer, bindparam, delete, insert, literal, select, update
from sqlalchemy.orm import Session

from hashcatalog.codec import encode_fingerprints
from hashcatalog.config import settings
from hashcatalog.database import (
    HashArchiveMap,
    HashImportMap,
    HashRecord,
    ImportRecord,
    ImportType,
    StringType,
    allocate_hash_ids,
)
from hashcatalog.deduplication.staging import (
    analyze_table,
    prepare_staging_tables,
    staged_duplicates,
    staged_hashes,
    wildcard_fingerprint_match,
)
from hashcatalog.fingerprints import compute_fingerprints
from hashcatalog.normalizers import replace_lone_surrogates

hashes = HashRecord.__table__
hash_import_map = HashImportMap.__table__
hash_archive_map = HashArchiveMap.__table__


@dataclass
class StringEntry:
    """One input string with its optional metadata."""
    string: str
    description: Optional[str] = None
    string_type: Optional[StringType] = None


@dataclass
class ImportResult:
    """Result of an import run."""
    import_id: Optional[int] = None
    entries_received: int = 0
    duplicates_in_batch: int = 0
    existing_strings: int = 0
    new_strings: int = 0
    reconciled_placeholders: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Calculate duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


def as_string_entry(entry: StringEntry | str) -> StringEntry:
    if isinstance(entry, StringEntry):
        return entry
    return StringEntry(string=entry)


def chunked(items: Iterable, size: int) -> Iterator[list]:
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk


def adopt_placeholder_ids(pairs: Iterable[tuple[int, int]]) -> dict[int, int]:
    """
    Decide which placeholder id each reconciled staged row takes over.

    Pairs are ``(staged_id, placeholder_id)``. Lower placeholder ids are
    served first. A staged row takes at most one id and an id is taken at
    most once; staged rows left over keep their own id.
    """
    adopted: dict[int, int] = {}
    taken: set[int] = set()
    for staged_id, placeholder_id in sorted(pairs, key=lambda p: (p[1], p[0])):
        if staged_id in adopted or placeholder_id in taken:
            continue
        adopted[staged_id] = placeholder_id
        taken.add(placeholder_id)
    return adopted


class DedupImportPipeline:
    """
    Merges a batch of strings into the catalog.

    The session must be inside a transaction owned by the caller, see
    hashcatalog.database.session_scope.
    """

    def __init__(self, session: Session, batch_size: int | None = None):
        self.session = session
        self.batch_size = batch_size or settings.pipeline.import_batch_size

    def run(
        self,
        entries: Iterable[StringEntry | str],
        import_type: ImportType = ImportType.UNKNOWN,
        source: str | None = None,
        discord_id: str | None = None,
    ) -> ImportResult:
        import_type = ImportType(import_type)
        result = ImportResult(started_at=datetime.now())
        logger.info(f"Importing strings with import type {import_type.name}")

        logger.debug("Preparing staging tables")
        prepare_staging_tables(self.session)

        staged = self._stage(entries, result)

        known_ids = self._drop_known_strings()
        result.existing_strings = len(known_ids)
        result.new_strings = staged - result.existing_strings
        logger.debug(f"{result.existing_strings} strings were already in the catalog ({result.new_strings} new)")

        pairs = self._collect_placeholder_matches()
        result.reconciled_placeholders = len({placeholder_id for _, placeholder_id in pairs})
        if pairs:
            logger.debug(f"{result.reconciled_placeholders} placeholders match staged strings")
            self._take_over_placeholder_ids(adopt_placeholder_ids(pairs))

        self._replace_placeholders()
        self._restore_provenance()
        result.import_id = self._record_import(import_type, source, discord_id, known_ids)

        result.completed_at = datetime.now()
        logger.info(
            f"Imported {result.new_strings} new strings "
            f"({result.entries_received} received, {result.duplicates_in_batch} duplicates, "
            f"{result.existing_strings} already known, {result.reconciled_placeholders} placeholders resolved)"
        )
        return result

    # ----- steps -----

    def _stage(self, entries: Iterable[StringEntry | str], result: ImportResult) -> int:
        """Hash distinct strings into the staging table. Returns the number staged."""
        seen: set[str] = set()

        for chunk in chunked(entries, self.batch_size):
            result.entries_received += len(chunk)
            rows = []
            for entry in map(as_string_entry, chunk):
                # Stored text must be valid UTF-8; fingerprints still see the raw string
                string = replace_lone_surrogates(entry.string)
                if string in seen:
                    continue
                seen.add(string)

                string_type = entry.string_type if entry.string_type is not None else StringType.UNKNOWN
                rows.append({
                    **encode_fingerprints(compute_fingerprints(entry.string)),
                    "string": string,
                    "description": (
                        replace_lone_surrogates(entry.description) if entry.description is not None else None
                    ),
                    "type": int(string_type),
                })

            if not rows:
                continue

            for row, hash_id in zip(rows, allocate_hash_ids(self.session, len(rows))):
                row["id"] = hash_id
            logger.debug(f"Staging batch of {len(rows)} strings ({result.entries_received} entries read)")
            self.session.execute(insert(staged_hashes), rows)

        result.duplicates_in_batch = result.entries_received - len(seen)
        logger.debug(f"After deduplication {len(seen)} strings were staged ({result.duplicates_in_batch} duplicates)")
        analyze_table(self.session, staged_hashes)
        return len(seen)

    def _drop_known_strings(self) -> list[int]:
        """Unstage strings the catalog already has. Returns the ids of their catalog rows."""
        known_ids = self.session.scalars(
            select(hashes.c.id)
            .where(hashes.c.string.in_(select(staged_hashes.c.string)))
            .distinct()
        ).all()
        known = select(hashes.c.string).where(hashes.c.string.is_not(None))
        self.session.execute(
            delete(staged_hashes).where(staged_hashes.c.string.in_(known))
        )
        return list(known_ids)

    def _collect_placeholder_matches(self) -> list[tuple[int, int]]:
        """Record placeholder matches with their links. Returns distinct (staged, placeholder) pairs."""
        matches = (
            select(
                staged_hashes.c.id.label("new_id"),
                hashes.c.id.label("orig_id"),
                hash_import_map.c.import_id,
                hash_archive_map.c.archive_id,
            )
            .select_from(
                hashes
                .join(staged_hashes, wildcard_fingerprint_match(hashes, staged_hashes))
                .outerjoin(hash_import_map, hash_import_map.c.hash_id == hashes.c.id)
                .outerjoin(hash_archive_map, hash_archive_map.c.hash_id == hashes.c.id)
            )
            .where(hashes.c.string.is_(None))
        )
        self.session.execute(
            insert(staged_duplicates).from_select(
                ["new_id", "orig_id", "import_id", "archive_id"], matches
            )
        )
        analyze_table(self.session, staged_duplicates)

        rows = self.session.execute(
            select(staged_duplicates.c.new_id, staged_duplicates.c.orig_id).distinct()
        ).all()
        return [(row.new_id, row.orig_id) for row in rows]

    def _take_over_placeholder_ids(self, adopted: dict[int, int]) -> None:
        if not adopted:
            return
        params = [{"b_staged": staged_id, "b_orig": orig_id} for staged_id, orig_id in adopted.items()]
        self.session.execute(
            update(staged_hashes)
            .where(staged_hashes.c.id == bindparam("b_staged"))
            .values(id=bindparam("b_orig")),
            params,
        )
        self.session.execute(
            update(staged_duplicates)
            .where(staged_duplicates.c.new_id == bindparam("b_staged"))
            .values(new_id=bindparam("b_orig")),
            params,
        )
        logger.debug(f"{len(adopted)} staged rows took over placeholder ids")

    def _replace_placeholders(self) -> None:
        replaced = select(staged_duplicates.c.orig_id)

        logger.debug("Deleting matched placeholders from the catalog")
        self.session.execute(delete(hash_import_map).where(hash_import_map.c.hash_id.in_(replaced)))
        self.session.execute(delete(hash_archive_map).where(hash_archive_map.c.hash_id.in_(replaced)))
        self.session.execute(delete(hashes).where(hashes.c.id.in_(replaced)))

        # Staged ids come from the catalog's own sequence (or are the ids of the
        # placeholders just deleted), so they are copied as they are.
        # TODO: merge descriptions when a placeholder and the new string both carry one
        logger.debug("Copying staged hashes into the catalog")
        columns = [column.name for column in staged_hashes.c]
        self.session.execute(insert(hashes).from_select(columns, select(staged_hashes)))

    def _restore_provenance(self) -> None:
        logger.debug("Restoring import and archive links of replaced placeholders")
        for link_table, column in ((hash_import_map, "import_id"), (hash_archive_map, "archive_id")):
            links = (
                select(staged_duplicates.c.new_id, staged_duplicates.c[column])
                .where(staged_duplicates.c[column].is_not(None))
                .distinct()
            )
            self.session.execute(insert(link_table).from_select(["hash_id", column], links))

    def _record_import(
        self,
        import_type: ImportType,
        source: str | None,
        discord_id: str | None,
        known_ids: list[int],
    ) -> int:
        """Create the import and link every staged row and every already known row to it."""
        logger.debug("Creating import record")
        record = ImportRecord(import_type=int(import_type), source=source, discord_id=discord_id)
        self.session.add(record)
        self.session.flush()

        self.session.execute(
            insert(hash_import_map).from_select(
                ["hash_id", "import_id"],
                select(staged_hashes.c.id, literal(record.id, Integer)),
            )
        )
        if known_ids:
            self.session.execute(insert(hash_import_map), [
                {"hash_id": hash_id, "import_id": record.id} for hash_id in known_ids
            ])
        return record.id
