# SPDX-License-Identifier: MIT
"""Tests for the deduplicating import pipeline."""

import pytest
from sqlalchemy import select

from hashcatalog.database import make_session_factory, session_scope
from hashcatalog.deduplication import DedupImportPipeline, StringEntry, adopt_placeholder_ids
from hashcatalog.deduplication.pipeline import ImportResult, as_string_entry, chunked
from hashcatalog.deduplication.staging import staged_duplicates, staged_hashes


class TestAdoptPlaceholderIds:
    """Test which placeholder id each staged row takes over."""

    def test_no_pairs(self):
        assert adopt_placeholder_ids([]) == {}

    def test_one_to_one(self):
        assert adopt_placeholder_ids([(10, 1), (11, 2)]) == {10: 1, 11: 2}

    def test_placeholder_matched_twice_goes_to_lowest_staged(self):
        assert adopt_placeholder_ids([(11, 1), (10, 1)]) == {10: 1}

    def test_staged_row_matching_two_placeholders_takes_lowest(self):
        assert adopt_placeholder_ids([(10, 2), (10, 1)]) == {10: 1}

    def test_leftovers_are_served_next(self):
        pairs = [(10, 1), (11, 1), (10, 2), (11, 2)]
        assert adopt_placeholder_ids(pairs) == {10: 1, 11: 2}


class TestHelpers:

    def test_chunked(self):
        assert list(chunked(range(5), 2)) == [[0, 1], [2, 3], [4]]
        assert list(chunked([], 3)) == []

    def test_as_string_entry(self):
        entry = StringEntry("foo", description="bar")
        assert as_string_entry(entry) is entry
        assert as_string_entry("foo") == StringEntry("foo")

    def test_duration(self):
        assert ImportResult().duration_seconds is None


@pytest.mark.integration
class TestDedupImportPipeline:
    """Test the pipeline inside a caller-owned transaction."""

    @pytest.fixture
    def factory(self, engine):
        return make_session_factory(engine)

    def test_counts_across_batches(self, factory):
        with session_scope(factory) as session:
            result = DedupImportPipeline(session, batch_size=2).run(["a", "b", "a", "c", "b"])

        assert result.entries_received == 5
        assert result.duplicates_in_batch == 2
        assert result.existing_strings == 0
        assert result.new_strings == 3
        assert result.reconciled_placeholders == 0
        assert result.duration_seconds is not None

    def test_existing_strings_counted(self, factory):
        with session_scope(factory) as session:
            DedupImportPipeline(session, batch_size=2).run(["a", "b"])
        with session_scope(factory) as session:
            result = DedupImportPipeline(session, batch_size=2).run(["a", "d", "d"])

        assert result.entries_received == 3
        assert result.duplicates_in_batch == 1
        assert result.existing_strings == 1
        assert result.new_strings == 1

    def test_staging_tables_reset_per_run(self, factory):
        with session_scope(factory) as session:
            pipeline = DedupImportPipeline(session, batch_size=10)
            pipeline.run(["a", "b"])
            assert len(session.execute(select(staged_hashes)).all()) == 2

            pipeline.run(["c"])
            staged = session.execute(select(staged_hashes.c.string)).scalars().all()
            assert staged == ["c"]
            assert session.execute(select(staged_duplicates)).all() == []

    def test_default_batch_size_from_settings(self, factory):
        from hashcatalog.config import settings

        with session_scope(factory) as session:
            assert DedupImportPipeline(session).batch_size == settings.pipeline.import_batch_size
