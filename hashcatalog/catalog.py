"""
Public entry point of the hash catalog.

A HashCatalog owns its SQLAlchemy engine; create one at startup, pass it to
whatever needs the catalog, and call dispose() at shutdown.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy import insert, select
from sqlalchemy.engine import Engine

from hashcatalog.codec import decode_fingerprints, encode_fingerprints, to_db_int
from hashcatalog.config import settings
from hashcatalog.database import (
    ArchiveRecord,
    GameRecord,
    HashArchiveMap,
    HashImportMap,
    HashRecord,
    ImportRecord,
    ImportType,
    StringType,
    allocate_hash_ids,
    create_all_tables,
    create_db_engine,
    make_session_factory,
    session_scope,
)
from hashcatalog.deduplication.pipeline import DedupImportPipeline, ImportResult, StringEntry
from hashcatalog.exceptions import EmptyFingerprintError, HashLookupError, InvalidFingerprintError
from hashcatalog.fingerprints import FINGERPRINT_BITS, Fingerprints


@dataclass
class HashEntry:
    """A catalog hash with unsigned fingerprint values."""
    id: int
    fingerprints: Fingerprints
    string: Optional[str] = None
    description: Optional[str] = None
    string_type: StringType = StringType.UNKNOWN

    @property
    def is_placeholder(self) -> bool:
        return self.string is None

    @classmethod
    def from_record(cls, record: HashRecord) -> "HashEntry":
        return cls(
            id=record.id,
            fingerprints=decode_fingerprints(record),
            string=record.string,
            description=record.description,
            string_type=StringType(record.string_type),
        )


def _check_unsigned(name: str, value: int) -> None:
    bits = FINGERPRINT_BITS[name]
    if not 0 <= value < 1 << bits:
        raise InvalidFingerprintError(f"{name} must be an unsigned {bits}-bit value, got {value}")


class HashCatalog:
    """Deduplicated hash catalog backed by a relational store."""

    def __init__(self, engine: Engine, batch_size: int | None = None):
        self.engine = engine
        self.session_factory = make_session_factory(engine)
        self.batch_size = batch_size or settings.pipeline.import_batch_size

    @classmethod
    def from_settings(cls) -> "HashCatalog":
        """Catalog on the configured database."""
        return cls(create_db_engine())

    def create_tables(self) -> None:
        create_all_tables(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    # ----- imports -----

    def run_import(
        self,
        entries: Iterable[StringEntry | str],
        import_type: ImportType = ImportType.UNKNOWN,
        source: str | None = None,
        discord_id: str | None = None,
    ) -> ImportResult:
        """Merge strings into the catalog in one transaction and report what happened."""
        try:
            with session_scope(self.session_factory) as session:
                pipeline = DedupImportPipeline(session, batch_size=self.batch_size)
                return pipeline.run(entries, import_type, source=source, discord_id=discord_id)
        except Exception as e:
            logger.error(f"Import failed, nothing was committed: {e}")
            raise

    def import_strings(
        self,
        entries: Iterable[StringEntry | str],
        import_type: ImportType = ImportType.UNKNOWN,
        source: str | None = None,
        discord_id: str | None = None,
    ) -> int:
        """
        Merge strings into the catalog.

        Returns:
            Number of strings that were not in the catalog before
        """
        return self.run_import(entries, import_type, source=source, discord_id=discord_id).new_strings

    def import_placeholders(
        self,
        fingerprints: Iterable[Fingerprints],
        import_type: ImportType = ImportType.UNKNOWN,
        source: str | None = None,
        discord_id: str | None = None,
        archive_id: int | None = None,
    ) -> list[int]:
        """
        Store fingerprint sets whose source string is unknown.

        Args:
            fingerprints: Unsigned fingerprint sets, each with at least one value
            import_type: Type of the import created for them
            source: Optional import source label
            discord_id: Optional Discord message/user id of the import
            archive_id: Archive the hashes were found in, if known

        Returns:
            Ids of the new placeholder records
        """
        fingerprints = list(fingerprints)
        for fp in fingerprints:
            if fp.is_empty():
                raise EmptyFingerprintError("A placeholder needs at least one fingerprint")
            for name, value in fp.as_dict().items():
                if value is not None:
                    _check_unsigned(name, value)

        with session_scope(self.session_factory) as session:
            ids = list(allocate_hash_ids(session, len(fingerprints)))
            if ids:
                session.execute(insert(HashRecord.__table__), [
                    {
                        **encode_fingerprints(fp),
                        "id": hash_id,
                        "string": None,
                        "description": None,
                        "type": int(StringType.UNKNOWN),
                    }
                    for hash_id, fp in zip(ids, fingerprints)
                ])

            record = ImportRecord(import_type=int(ImportType(import_type)), source=source, discord_id=discord_id)
            session.add(record)
            session.flush()

            if ids:
                session.execute(insert(HashImportMap.__table__), [
                    {"hash_id": hash_id, "import_id": record.id} for hash_id in ids
                ])
                if archive_id is not None:
                    session.execute(insert(HashArchiveMap.__table__), [
                        {"hash_id": hash_id, "archive_id": archive_id} for hash_id in ids
                    ])

        logger.info(f"Imported {len(ids)} placeholder hashes")
        return ids

    # ----- lookups -----

    def find_hash(
        self,
        *,
        fnv32: int | None = None,
        fnv64: int | None = None,
        crc32: int | None = None,
        crc64: int | None = None,
    ) -> list[HashEntry]:
        """
        Find hashes by exactly one unsigned fingerprint value.

        Raises:
            HashLookupError: If zero or several fingerprints are given
        """
        given = {
            name: value
            for name, value in (("fnv32", fnv32), ("fnv64", fnv64), ("crc32", crc32), ("crc64", crc64))
            if value is not None
        }
        if len(given) != 1:
            raise HashLookupError(f"Exactly one fingerprint must be given, got {sorted(given) or 'none'}")

        (name, value), = given.items()
        _check_unsigned(name, value)

        with session_scope(self.session_factory) as session:
            column = getattr(HashRecord, name)
            records = session.scalars(
                select(HashRecord)
                .where(column == to_db_int(value, FINGERPRINT_BITS[name]))
                .order_by(HashRecord.id)
            ).all()
            return [HashEntry.from_record(record) for record in records]

    # ----- games and archives -----

    def create_game(self, name: str) -> int:
        with session_scope(self.session_factory) as session:
            game = GameRecord(name=name)
            session.add(game)
            session.flush()
            return game.id

    def create_archive(self, game_id: int, name: str, description: str | None = None) -> int:
        """Create an archive of a game. Returns its id."""
        with session_scope(self.session_factory) as session:
            archive = ArchiveRecord(game_id=game_id, name=name, description=description)
            session.add(archive)
            session.flush()
            logger.debug(f"Created archive {name} for game {game_id}")
            return archive.id
