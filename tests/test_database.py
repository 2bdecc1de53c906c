"""Tests for database handle lifecycle."""

import gc
import logging
import sqlite3

import pytest

from sqlbridge import (
    AllocationError,
    ArgumentTypeError,
    BridgeConfig,
    ClosedDatabaseError,
    CloseError,
    DatabaseHandle,
    HandleState,
    OpenError,
    RangeError,
    close_database,
    get_last_insert_rowid,
    open_database,
)


class TestOpen:
    """Tests for opening databases."""

    def test_open_creates_file(self, tmp_path):
        """Test that opening a missing file creates it."""
        path = tmp_path / "new.db"
        db = open_database(path)
        try:
            db("CREATE TABLE t(a)")
            assert path.exists()
            assert db.state is HandleState.OPEN
            assert db.is_open
            assert db.path == str(path)
        finally:
            db.close()

    def test_open_accepts_str_path(self, tmp_path):
        """Test that a plain string path works."""
        with open_database(str(tmp_path / "s.db")) as db:
            assert db("SELECT 1 AS n") == [{"n": 1}]

    def test_open_memory(self):
        """Test an in-memory database."""
        with open_database(":memory:") as db:
            assert db("SELECT 2 AS n") == [{"n": 2}]

    def test_open_requires_path(self):
        """Test that a non-string path is a type error."""
        with pytest.raises(ArgumentTypeError) as exc_info:
            open_database(42)
        assert exc_info.value.blamed == 42

    def test_open_directory_fails(self, tmp_path):
        """Test that a directory cannot be opened as a database."""
        with pytest.raises(OpenError) as exc_info:
            open_database(tmp_path)
        assert exc_info.value.tag == "Unable to open database"
        assert exc_info.value.diagnostic

    def test_open_non_database_file_fails(self, tmp_path):
        """Test that a file that is not a database is rejected at open."""
        path = tmp_path / "junk.db"
        path.write_bytes(b"this is definitely not an sqlite database file" * 100)
        with pytest.raises(OpenError) as exc_info:
            open_database(path)
        assert "file is not a database" in exc_info.value.diagnostic

    def test_allocation_failure_closes_connection(self, tmp_path, monkeypatch):
        """Test that running out of memory while creating the handle closes the connection."""
        connections = []

        def failing_init(self, connection, path, config):
            connections.append(connection)
            raise MemoryError

        monkeypatch.setattr(DatabaseHandle, "__init__", failing_init)
        with pytest.raises(AllocationError):
            open_database(tmp_path / "m.db")
        (connection,) = connections
        with pytest.raises(sqlite3.ProgrammingError):
            connection.execute("SELECT 1")

    def test_busy_timeout_applied(self, tmp_path):
        """Test that the configured busy timeout reaches the engine."""
        with open_database(tmp_path / "t.db", BridgeConfig(busy_timeout_ms=1500)) as db:
            assert db("PRAGMA busy_timeout") == [{"timeout": 1500}]

    def test_default_busy_timeout(self, tmp_path):
        """Test the one second default."""
        with open_database(tmp_path / "t.db") as db:
            assert db("PRAGMA busy_timeout") == [{"timeout": 1000}]


class TestClose:
    """Tests for closing databases."""

    def test_close(self, tmp_path):
        """Test that close moves the handle to the closed state."""
        db = open_database(tmp_path / "c.db")
        assert close_database(db) is None
        assert db.state is HandleState.CLOSED
        assert not db.is_open

    def test_close_twice_is_a_no_op(self, tmp_path):
        """Test that a second close does nothing."""
        db = open_database(tmp_path / "c.db")
        db.close()
        assert db.close() is None
        assert close_database(db) is None
        assert db.state is HandleState.CLOSED

    def test_calls_after_close(self, tmp_path):
        """Test that closed handles refuse further work."""
        db = open_database(tmp_path / "c.db")
        db.close()
        with pytest.raises(ClosedDatabaseError):
            db("SELECT 1")
        with pytest.raises(ClosedDatabaseError):
            get_last_insert_rowid(db)
        with pytest.raises(ClosedDatabaseError):
            db.require_open()

    def test_close_requires_handle(self):
        """Test that close rejects other values."""
        with pytest.raises(ArgumentTypeError):
            close_database("not a database")

    def test_close_refused(self, tmp_path):
        """Test that an engine refusal leaves the handle open."""

        class RefusingConnection(sqlite3.Connection):
            def close(self):
                raise sqlite3.OperationalError("unable to close due to unfinalized statements")

        connection = sqlite3.connect(str(tmp_path / "r.db"), factory=RefusingConnection)
        db = DatabaseHandle(connection, str(tmp_path / "r.db"))
        with pytest.raises(CloseError) as exc_info:
            db.close()
        assert "unfinalized" in exc_info.value.diagnostic
        assert db.state is HandleState.OPEN
        db._finalizer.detach()
        sqlite3.Connection.close(connection)

    def test_context_manager_closes(self, tmp_path):
        """Test that leaving a with block closes the handle."""
        with open_database(tmp_path / "c.db") as db:
            db("SELECT 1")
        assert db.state is HandleState.CLOSED

    def test_explicit_close_detaches_teardown(self, tmp_path):
        """Test that teardown will not run again after close."""
        db = open_database(tmp_path / "c.db")
        db.close()
        assert not db._finalizer.alive


class TestTeardown:
    """Tests for closing handles that are garbage-collected."""

    def test_collected_handle_closes_connection(self, tmp_path, caplog):
        """Test that dropping an open handle releases its connection."""
        db = open_database(tmp_path / "g.db")
        connection = db.require_open()
        with caplog.at_level(logging.DEBUG, logger="sqlbridge.database"):
            del db
            gc.collect()
        with pytest.raises(sqlite3.ProgrammingError):
            connection.execute("SELECT 1")
        assert "Closed collected database" in caplog.text

    def test_teardown_failure_is_only_logged(self, tmp_path, caplog):
        """Test that a failing teardown does not raise."""

        class RefusingConnection(sqlite3.Connection):
            def close(self):
                raise sqlite3.OperationalError("refused")

        connection = sqlite3.connect(str(tmp_path / "r.db"), factory=RefusingConnection)
        db = DatabaseHandle(connection, str(tmp_path / "r.db"))
        finalizer = db._finalizer
        with caplog.at_level(logging.WARNING, logger="sqlbridge.database"):
            finalizer()
        assert "Failed to close collected database" in caplog.text
        assert not finalizer.alive
        sqlite3.Connection.close(connection)


class TestLastInsertRowid:
    """Tests for reading the last inserted rowid."""

    def test_last_insert_rowid(self, tmp_path):
        """Test the rowid after inserts."""
        with open_database(tmp_path / "r.db") as db:
            db("CREATE TABLE t(a); INSERT INTO t VALUES ('x'); INSERT INTO t VALUES ('y')")
            assert get_last_insert_rowid(db) == 2
            assert db.last_insert_row_id() == 2.0

    def test_no_insert_yet(self, tmp_path):
        """Test that a fresh connection reports zero."""
        with open_database(tmp_path / "r.db") as db:
            assert get_last_insert_rowid(db) == 0

    def test_rowid_out_of_range(self, tmp_path):
        """Test that a rowid beyond 2**53 is a range error."""
        with open_database(tmp_path / "r.db") as db:
            db("CREATE TABLE t(a); INSERT INTO t(rowid, a) VALUES (9007199254740993, 'x')")
            with pytest.raises(RangeError):
                get_last_insert_rowid(db)

    def test_requires_handle(self):
        """Test that other values are rejected."""
        with pytest.raises(ArgumentTypeError):
            get_last_insert_rowid(None)


class TestRepr:
    """Tests for handle display."""

    def test_repr(self, tmp_path):
        """Test that repr shows path and state."""
        db = open_database(tmp_path / "x.db")
        assert repr(db).endswith(", open)")
        db.close()
        assert repr(db).endswith(", closed)")
