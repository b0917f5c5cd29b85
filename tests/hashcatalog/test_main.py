# SPDX-License-Identifier: MIT
"""Tests for the command line."""

import pytest
from click.testing import CliRunner

from hashcatalog.database import StringType
from hashcatalog.main import cli, read_strings


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'catalog.db'}"


def test_read_strings(tmp_path):
    path = tmp_path / "strings.txt"
    path.write_text("lol\r\n\r\ndata/foo.dds\n", encoding="utf-8")

    entries = read_strings(path, StringType.FILE_PATH)
    assert [e.string for e in entries] == ["lol", "data/foo.dds"]
    assert all(e.string_type == StringType.FILE_PATH for e in entries)


def test_hash_command(runner):
    result = runner.invoke(cli, ["hash", "lol"])

    assert result.exit_code == 0
    assert "B8B7A7186B90559E" in result.output
    assert "6B90559E" in result.output
    assert "18EDB14D" in result.output
    assert "6EDC72D3A99101FE" in result.output


@pytest.mark.integration
class TestDatabaseCommands:

    def test_import_and_find(self, runner, database_url, tmp_path):
        strings = tmp_path / "strings.txt"
        strings.write_text("lol\nlol\nother\n", encoding="utf-8")

        result = runner.invoke(cli, ["--database-url", database_url, "init-db"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(
            cli,
            ["--database-url", database_url, "import", str(strings), "--type", "leak", "--source", "test"],
        )
        assert result.exit_code == 0, result.output
        assert "New strings" in result.output

        result = runner.invoke(cli, ["--database-url", database_url, "find", "--fnv64", "B8B7A7186B90559E"])
        assert result.exit_code == 0, result.output
        assert "lol" in result.output
        assert "other" not in result.output

    def test_find_without_match(self, runner, database_url):
        runner.invoke(cli, ["--database-url", database_url, "init-db"])

        result = runner.invoke(cli, ["--database-url", database_url, "find", "--crc32", "0x1"])
        assert result.exit_code == 0
        assert "No matching hashes" in result.output

    def test_drop_asks_for_confirmation(self, runner, database_url):
        runner.invoke(cli, ["--database-url", database_url, "init-db"])

        result = runner.invoke(cli, ["--database-url", database_url, "init-db", "--drop"], input="n\n")
        assert result.exit_code == 1

        result = runner.invoke(cli, ["--database-url", database_url, "init-db", "--drop"], input="y\n")
        assert result.exit_code == 0


class TestFindArguments:

    def test_needs_exactly_one_fingerprint(self, runner):
        result = runner.invoke(cli, ["--database-url", "sqlite://", "find", "--fnv32", "1", "--crc32", "2"])
        assert result.exit_code == 2

        result = runner.invoke(cli, ["--database-url", "sqlite://", "find"])
        assert result.exit_code == 2

    def test_rejects_out_of_range_value(self, runner):
        result = runner.invoke(cli, ["--database-url", "sqlite://", "find", "--fnv32", "1FFFFFFFF"])
        assert result.exit_code == 2
        assert "unsigned 32-bit" in result.output

    def test_rejects_bad_hex(self, runner):
        result = runner.invoke(cli, ["--database-url", "sqlite://", "find", "--fnv32", "xyz"])
        assert result.exit_code == 2
