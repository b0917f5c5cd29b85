# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for hash catalog tests."""

import os
import pytest
from typing import Generator

# Set test environment variables before importing the package
os.environ.setdefault("DISABLE_LOGGING", "1")


@pytest.fixture
def engine() -> Generator:
    """In-memory SQLite catalog with all tables created."""
    from hashcatalog.database import create_all_tables, create_db_engine

    engine = create_db_engine("sqlite://", echo=False)
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def catalog(engine):
    """Catalog with a tiny batch size so imports span several staging batches."""
    from hashcatalog.catalog import HashCatalog

    return HashCatalog(engine, batch_size=2)


@pytest.fixture
def session(engine) -> Generator:
    """Session for inspecting the catalog directly."""
    from hashcatalog.database import make_session_factory

    session = make_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def archive_id(catalog) -> int:
    """An archive of a test game."""
    game_id = catalog.create_game("Watch_Dogs")
    return catalog.create_archive(game_id, "common.fat", description="Common data")


@pytest.fixture
def lol_fingerprints():
    """Fingerprints of the string "lol"."""
    from hashcatalog.fingerprints import Fingerprints

    return Fingerprints(
        fnv32=0x6B90559E,
        fnv64=0xB8B7A7186B90559E,
        crc32=0x18EDB14D,
        crc64=0x6EDC72D3A99101FE,
    )
