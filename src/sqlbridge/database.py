"""Database handles: open, query, close."""

from __future__ import annotations

import logging
import os
import sqlite3
import weakref
from enum import Enum
from typing import Any

from sqlbridge.config import DEFAULT_CONFIG, BridgeConfig
from sqlbridge.errors import (
    AllocationError,
    ArgumentTypeError,
    ClosedDatabaseError,
    CloseError,
    OpenError,
    RangeError,
    report_exception,
)
from sqlbridge.executor import StatementBatchExecutor
from sqlbridge.values import in_host_range

logger = logging.getLogger(__name__)


class HandleState(Enum):
    OPEN = "open"
    CLOSED = "closed"


def _decode_text(data: bytes) -> str:
    # Keeps invalid UTF-8 round-trippable instead of failing the row
    return data.decode("utf-8", "surrogateescape")


def _teardown(connection: sqlite3.Connection, path: str) -> None:
    """Close a connection whose handle was collected while still open.

    Nobody is left to report a failure to, so it is only logged.
    """
    try:
        connection.close()
    except sqlite3.Error as e:
        logger.warning("Failed to close collected database %s: %s", path, e)
    else:
        logger.debug("Closed collected database %s", path)


class DatabaseHandle:
    """Owns one SQLite connection.

    Calling the handle runs a batch of SQL: ``db("SELECT ?", 1)``.
    """

    def __init__(self, connection: sqlite3.Connection, path: str, config: BridgeConfig = DEFAULT_CONFIG) -> None:
        self._connection: sqlite3.Connection | None = connection
        self._path = path
        self.config = config
        self.state = HandleState.OPEN
        self._active_statements = 0
        self._finalizer = weakref.finalize(self, _teardown, connection, path)

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_open(self) -> bool:
        return self.state is HandleState.OPEN

    @property
    def active_statements(self) -> int:
        """Number of compiled statements alive on this connection."""
        return self._active_statements

    def require_open(self) -> sqlite3.Connection:
        """Return the connection, or raise if the handle is closed."""
        if self.state is HandleState.CLOSED or self._connection is None:
            raise ClosedDatabaseError()
        return self._connection

    def statement_opened(self) -> None:
        self._active_statements += 1

    def statement_closed(self) -> None:
        self._active_statements -= 1

    def __call__(self, sql: Any, *params: Any) -> list[dict[str, Any]]:
        return self.execute(sql, params)

    def execute(self, sql: Any, params: tuple[Any, ...] | list[Any] = ()) -> list[dict[str, Any]]:
        """Run every statement in ``sql`` with ``params`` and return all rows."""
        return StatementBatchExecutor(self, self.config).execute(sql, params)

    def last_insert_row_id(self) -> float:
        """Return the rowid of the most recent successful insert.

        Raises:
            ClosedDatabaseError: The handle was closed.
            RangeError: The id is not exactly representable as a host Number.
        """
        connection = self.require_open()
        (row_id,) = connection.execute("SELECT last_insert_rowid()").fetchone()
        if not in_host_range(row_id):
            raise RangeError(f"{row_id} is outside the host number range", blamed=row_id)
        return float(row_id)

    def close(self) -> None:
        """Release the connection.

        Closing an already closed handle does nothing.

        Raises:
            CloseError: The engine refused to close; the handle stays open.
        """
        if self.state is HandleState.CLOSED:
            logger.debug("Database %s already closed", self._path)
            return None
        try:
            self._connection.close()  # type: ignore[union-attr]
        except sqlite3.Error as e:
            raise CloseError.from_report(report_exception(e), blamed=self) from e
        self._finalizer.detach()
        self._connection = None
        self.state = HandleState.CLOSED
        logger.debug("Closed database %s", self._path)
        return None

    def __enter__(self) -> DatabaseHandle:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DatabaseHandle({self._path!r}, {self.state.value})"


def open_database(path: Any, config: BridgeConfig | None = None) -> DatabaseHandle:
    """Open (creating if absent) the database at ``path``.

    The connection runs in autocommit mode and retries a locked database
    for ``config.busy_timeout_ms`` before reporting busy.

    Raises:
        ArgumentTypeError: ``path`` is not a string or path-like object.
        OpenError: The engine could not open the file.
        AllocationError: The handle could not be created.
    """
    if config is None:
        config = DEFAULT_CONFIG
    if not isinstance(path, (str, os.PathLike)):
        raise ArgumentTypeError("Expected string path as first argument for 'open'", blamed=path)
    path_str = os.fspath(path)

    try:
        connection = sqlite3.connect(
            path_str,
            timeout=config.busy_timeout_seconds,
            isolation_level=None,
            check_same_thread=False,
            cached_statements=0,
        )
    except sqlite3.Error as e:
        raise OpenError.from_report(report_exception(e), blamed=path) from e

    try:
        connection.text_factory = _decode_text
        # sqlite3.connect is lazy about some failures; touching the schema surfaces them
        connection.execute("PRAGMA schema_version").fetchone()
        handle = DatabaseHandle(connection, path_str, config)
    except sqlite3.Error as e:
        connection.close()
        raise OpenError.from_report(report_exception(e), blamed=path) from e
    except MemoryError:
        connection.close()
        raise AllocationError() from None

    logger.debug("Opened database %s", path_str)
    return handle


def _require_handle(value: Any, operation: str) -> DatabaseHandle:
    if not isinstance(value, DatabaseHandle):
        raise ArgumentTypeError(f"Expected database object as argument for '{operation}'", blamed=value)
    return value


def close_database(handle: Any) -> None:
    """Close ``handle``; see :meth:`DatabaseHandle.close`."""
    return _require_handle(handle, "close").close()


def get_last_insert_rowid(handle: Any) -> float:
    """Return the last inserted rowid of ``handle``."""
    return _require_handle(handle, "get-last-insert-rowid").last_insert_row_id()
