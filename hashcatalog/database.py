"""
Database models for the hash catalog.

Uses SQLAlchemy 2.0. PostgreSQL is the production store; any SQLAlchemy
backend with temporary tables works (tests run on SQLite).
"""

from contextlib import contextmanager
from datetime import datetime
from enum import IntEnum
from typing import Iterator, List, Optional

from sqlalchemy import (
    DDL,
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    create_engine,
    event,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func

from hashcatalog.config import settings
from hashcatalog.exceptions import CatalogError


# =============================================================================
# Database Engine and Session
# =============================================================================

def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create the engine for a database URL.

    Defaults to the configured PostgreSQL database. In-memory SQLite URLs get a
    single shared connection so temporary tables and data survive between sessions.
    """
    url = url or settings.database.url
    echo = settings.database.echo if echo is None else echo

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_recycle=1800,      # Recycle connections every 30 minutes
        connect_args={
            "connect_timeout": 10,  # Connection timeout in seconds
        },
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine."""
    return sessionmaker(autoflush=False, bind=engine)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Context manager for one transaction: commit on success, rollback on error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================================
# Enumerations
# =============================================================================

class ImportType(IntEnum):
    """Where a batch of strings came from."""
    UNKNOWN = 0
    DISCORD = 1
    LEAK = 2


class StringType(IntEnum):
    """What kind of string a hash was computed from."""
    UNKNOWN = 0
    FILE_PATH = 1


# =============================================================================
# Base Model
# =============================================================================

class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# =============================================================================
# Hash Catalog
# =============================================================================

class HashRecord(Base):
    """
    One fingerprint set in the catalog.

    A record with a string is canonical. A record without one is a placeholder
    for fingerprints seen before their source string was recovered.

    Fingerprints are stored signed, see hashcatalog.codec.
    """
    __tablename__ = "hashes"

    # Allocated from hash_id_sequence, never by the database
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    fnv32: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    fnv64: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    crc32: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    crc64: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    string: Mapped[Optional[str]] = mapped_column(Text, nullable=True, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    string_type: Mapped[int] = mapped_column("type", Integer, nullable=False, default=StringType.UNKNOWN)

    imports: Mapped[List["ImportRecord"]] = relationship(
        "ImportRecord", secondary="hash_import_map", viewonly=True, order_by="ImportRecord.id"
    )
    archives: Mapped[List["ArchiveRecord"]] = relationship(
        "ArchiveRecord", secondary="hash_archive_map", viewonly=True, order_by="ArchiveRecord.id"
    )

    __table_args__ = (
        Index("idx_hashes_fnv32", "fnv32"),
        Index("idx_hashes_fnv64", "fnv64"),
        Index("idx_hashes_crc32", "crc32"),
        Index("idx_hashes_crc64", "crc64"),
    )

    @property
    def is_placeholder(self) -> bool:
        return self.string is None

    def __repr__(self) -> str:
        return f"<HashRecord {self.id}: {self.string!r}>"


class HashIdSequence(Base):
    """
    Shared id allocator for canonical and staged hash rows.

    Staged rows draw their ids here before they exist in ``hashes``, so they
    can be copied over verbatim without colliding with catalog ids.
    """
    __tablename__ = "hash_id_sequence"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    last_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


HASH_ID_SEQUENCE = "hashes"

event.listen(
    HashIdSequence.__table__,
    "after_create",
    DDL(f"INSERT INTO hash_id_sequence (name, last_value) VALUES ('{HASH_ID_SEQUENCE}', 0)"),
)


def allocate_hash_ids(session: Session, count: int) -> range:
    """
    Reserve ``count`` consecutive hash ids.

    The counter row stays locked until the surrounding transaction ends,
    which serializes concurrent imports on PostgreSQL.
    """
    if count <= 0:
        return range(0)

    seq = HashIdSequence.__table__
    result = session.execute(
        update(seq)
        .where(seq.c.name == HASH_ID_SEQUENCE)
        .values(last_value=seq.c.last_value + count)
    )
    if result.rowcount != 1:
        raise CatalogError("Hash id sequence is not initialised, run 'init-db' first")

    last = session.execute(
        select(seq.c.last_value).where(seq.c.name == HASH_ID_SEQUENCE)
    ).scalar_one()
    return range(last - count + 1, last + 1)


# =============================================================================
# Provenance Models
# =============================================================================

class ImportRecord(Base):
    """
    One call that merged data into the catalog.

    Created once per import and never changed afterwards.
    """
    __tablename__ = "imports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    import_type: Mapped[int] = mapped_column("type", Integer, nullable=False, default=ImportType.UNKNOWN)
    source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    discord_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return f"<ImportRecord {self.id} ({ImportType(self.import_type).name})>"


class HashImportMap(Base):
    """Which imports contributed a hash."""
    __tablename__ = "hash_import_map"

    hash_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("hashes.id", ondelete="CASCADE"), primary_key=True
    )
    import_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("imports.id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (
        Index("idx_hash_import_map_import", "import_id"),
    )


class GameRecord(Base):
    """A game whose archives hashes are found in."""
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    archives: Mapped[List["ArchiveRecord"]] = relationship("ArchiveRecord", back_populates="game")

    def __repr__(self) -> str:
        return f"<GameRecord {self.id}: {self.name}>"


class ArchiveRecord(Base):
    """An archive file of a game."""
    __tablename__ = "archives"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(Integer, ForeignKey("games.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    game: Mapped["GameRecord"] = relationship("GameRecord", back_populates="archives")

    def __repr__(self) -> str:
        return f"<ArchiveRecord {self.id}: {self.name}>"


class HashArchiveMap(Base):
    """Which archives a hash was seen in."""
    __tablename__ = "hash_archive_map"

    hash_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("hashes.id", ondelete="CASCADE"), primary_key=True
    )
    archive_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("archives.id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (
        Index("idx_hash_archive_map_archive", "archive_id"),
    )


# =============================================================================
# Helper Functions
# =============================================================================

def create_all_tables(engine: Engine):
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def drop_all_tables(engine: Engine):
    """Drop all database tables. USE WITH CAUTION!"""
    Base.metadata.drop_all(bind=engine)
