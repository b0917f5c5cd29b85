"""
Transaction-scoped staging tables for imports.

``staged_hashes`` mirrors the ``hashes`` columns. Its ids come from the shared
hash id sequence, so staged rows can be copied into the catalog as they are.
``staged_duplicates`` records which placeholder each staged row replaces,
together with the placeholder's import and archive links.
"""

from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    MetaData,
    Table,
    Text,
    and_,
    delete,
    or_,
    text,
)
from sqlalchemy.orm import Session
from sqlalchemy.schema import CreateTable

from hashcatalog.fingerprints import FINGERPRINT_FIELDS

staging_metadata = MetaData()

staged_hashes = Table(
    "staged_hashes",
    staging_metadata,
    Column("id", BigInteger, primary_key=True, autoincrement=False),
    Column("fnv32", Integer, nullable=True),
    Column("fnv64", BigInteger, nullable=True),
    Column("crc32", Integer, nullable=True),
    Column("crc64", BigInteger, nullable=True),
    Column("string", Text, nullable=True),
    Column("description", Text, nullable=True),
    Column("type", Integer, nullable=False),
    prefixes=["TEMPORARY"],
    postgresql_on_commit="DELETE ROWS",
)

staged_duplicates = Table(
    "staged_duplicates",
    staging_metadata,
    Column("new_id", BigInteger, nullable=False),
    Column("orig_id", BigInteger, nullable=False),
    Column("import_id", Integer, nullable=True),
    Column("archive_id", Integer, nullable=True),
    prefixes=["TEMPORARY"],
    postgresql_on_commit="DELETE ROWS",
)

STAGING_TABLES = (staged_hashes, staged_duplicates)


def prepare_staging_tables(session: Session) -> None:
    """Create the staging tables on this connection if needed and empty them."""
    connection = session.connection()
    for table in STAGING_TABLES:
        connection.execute(CreateTable(table, if_not_exists=True))
        connection.execute(delete(table))


def analyze_table(session: Session, table: Table) -> None:
    """Refresh planner statistics for a freshly filled table (PostgreSQL only)."""
    if session.get_bind().dialect.name == "postgresql":
        session.execute(text(f"ANALYZE {table.name}"))


def wildcard_fingerprint_match(catalog: Table, staged: Table):
    """
    Join condition between catalog rows and staged rows.

    Each fingerprint column must be equal, unless the catalog row does not
    know that fingerprint. Same rule as Fingerprints.matches.
    """
    return and_(*(
        or_(catalog.c[name] == staged.c[name], catalog.c[name].is_(None))
        for name in FINGERPRINT_FIELDS
    ))
