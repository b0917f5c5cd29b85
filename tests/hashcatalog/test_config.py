# SPDX-License-Identifier: MIT
"""Tests for settings loaded from the environment."""

import pytest
from pydantic import ValidationError

from hashcatalog.config import DatabaseSettings, PipelineSettings


class TestDatabaseSettings:

    def test_url_from_fields(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        db = DatabaseSettings(user="wd", password="secret", host="db", port=6543, db="hashes")
        assert db.url == "postgresql://wd:secret@db:6543/hashes"

    def test_url_from_prefixed_env(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("POSTGRES_HOST", "pg.internal")
        monkeypatch.setenv("POSTGRES_PORT", "5433")
        assert "@pg.internal:5433/" in DatabaseSettings().url

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///catalog.db")
        assert DatabaseSettings().url == "sqlite:///catalog.db"


class TestPipelineSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("IMPORT_BATCH_SIZE", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        pipeline = PipelineSettings()
        assert pipeline.import_batch_size == 10_000
        assert pipeline.log_level == "INFO"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("IMPORT_BATCH_SIZE", "500")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        pipeline = PipelineSettings()
        assert pipeline.import_batch_size == 500
        assert pipeline.log_level == "DEBUG"

    @pytest.mark.parametrize("size", [0, -5])
    def test_batch_size_must_be_positive(self, size):
        with pytest.raises(ValidationError):
            PipelineSettings(import_batch_size=size)
