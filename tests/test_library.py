"""Tests for the host function table."""

import pytest

from sqlbridge import (
    ArgumentTypeError,
    BridgeConfig,
    DatabaseHandle,
    LibraryVersionError,
    load_library,
)
from sqlbridge.library import check_version


class TestVersionGate:
    """Tests for host version checks."""

    @pytest.mark.parametrize("version", ["0.0.0", "0.0.3", "0:0:1", "0.0"])
    def test_supported(self, version):
        """Test versions the library accepts."""
        assert check_version(version)
        assert len(load_library(version, BridgeConfig())) == 3

    @pytest.mark.parametrize("version", ["1.0.0", "0.1.0", "0:2:0", ""])
    def test_unsupported(self, version):
        """Test that other versions refuse to load."""
        assert not check_version(version)
        with pytest.raises(LibraryVersionError) as exc_info:
            load_library(version)
        assert exc_info.value.tag == "Library `sqlbridge` only works for version 0:0:x"


class TestLibrary:
    """Tests for the exported functions."""

    def test_function_names(self):
        """Test the exported names in order."""
        library = load_library(config=BridgeConfig())
        assert list(library) == ["open", "close", "get-last-insert-rowid"]
        assert "open" in library
        assert "query" not in library

    def test_open_query_close(self, tmp_path):
        """Test a full session through the table."""
        library = load_library(config=BridgeConfig())
        db = library["open"](str(tmp_path / "lib.db"))
        assert isinstance(db, DatabaseHandle)
        db("CREATE TABLE t(a)")
        db("INSERT INTO t VALUES (?)", "x")
        assert library["get-last-insert-rowid"](db) == 1.0
        assert db("SELECT a FROM t") == [{"a": "x"}]
        assert library["close"](db) is None
        assert not db.is_open

    def test_open_uses_library_config(self, tmp_path):
        """Test that handles opened through the table use its config."""
        library = load_library(config=BridgeConfig(busy_timeout_ms=20))
        with library["open"](str(tmp_path / "lib.db")) as db:
            assert db.config.busy_timeout_ms == 20

    def test_config_from_environment(self, monkeypatch):
        """Test that the environment is read when no config is given."""
        monkeypatch.setenv("SQLBRIDGE_DUPLICATE_COLUMNS", "error")
        assert load_library().config.duplicate_columns == "error"

    def test_arity(self):
        """Test that the wrong argument count is a type error."""
        library = load_library(config=BridgeConfig())
        with pytest.raises(ArgumentTypeError, match="expects 1 argument, got 0"):
            library["open"]()
        with pytest.raises(ArgumentTypeError):
            library["close"](1, 2)

    def test_bad_handle(self):
        """Test that non-handles are rejected."""
        library = load_library(config=BridgeConfig())
        with pytest.raises(ArgumentTypeError, match="get-last-insert-rowid"):
            library["get-last-insert-rowid"]("db")
        with pytest.raises(ArgumentTypeError, match="'close'"):
            library["close"](None)

    def test_instances_are_independent(self, tmp_path):
        """Test that two libraries share no state."""
        first = load_library(config=BridgeConfig(busy_timeout_ms=1))
        second = load_library(config=BridgeConfig(busy_timeout_ms=2))
        assert first.functions is not second.functions
        assert first.config != second.config
        db = first["open"](str(tmp_path / "a.db"))
        second["close"](db)
        assert not db.is_open
