"""Execution of SQL batches against an open database handle.

A batch is every statement found in one SQL string. Statements are
compiled, bound, stepped and finalized one after another; all rows they
return are gathered into a single result list. The first failure aborts
the whole batch and nothing collected so far is returned.

The ``sqlite3`` module compiles, binds and starts a statement inside one
``Cursor.execute`` call. To tell a compile failure from a failure while
running, a trace callback is installed for the duration of the batch: the
engine invokes it when a statement starts executing, so an engine error
raised before that point came from compiling the statement.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from sqlbridge.config import DEFAULT_CONFIG, BridgeConfig
from sqlbridge.errors import (
    SQLITE_RANGE,
    AllocationError,
    ArgumentTypeError,
    BindError,
    BusyTimeoutError,
    CompileError,
    SqlBridgeError,
    StepError,
    TooManyParamsError,
    is_busy,
    report,
    report_exception,
)
from sqlbridge.marshalling import INT_MAX, SqlValue, to_sql_params
from sqlbridge.parsing import Statement, StatementSplitter
from sqlbridge.rows import append_row, capture_column_names, collect_row

if TYPE_CHECKING:
    from sqlbridge.database import DatabaseHandle

logger = logging.getLogger(__name__)

# SQLite's compile-time default for SQLITE_MAX_VARIABLE_NUMBER
DEFAULT_VARIABLE_LIMIT = 32766


def connection_limit(connection: sqlite3.Connection, category: int, default: int) -> int:
    """Return a run-time limit of the connection, or ``default`` if unavailable."""
    try:
        return connection.getlimit(category)
    except (AttributeError, sqlite3.Error):
        return default


class StatementBatchExecutor:
    """Runs one batch on a handle.

    An executor is cheap; the handle creates one per call.
    """

    def __init__(self, handle: DatabaseHandle, config: BridgeConfig = DEFAULT_CONFIG) -> None:
        self.handle = handle
        self.config = config
        self._started = False

    def execute(self, sql: Any, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute every statement in ``sql`` and return all rows in order.

        Args:
            sql: SQL text holding zero or more statements.
            params: Values bound positionally, from index 1, to each statement.

        Returns:
            One record per row, in statement order then row order. Statements
            that return no data contribute nothing.

        Raises:
            ClosedDatabaseError: The handle was closed.
            ArgumentTypeError: ``sql`` is not a string.
            TooManyParamsError: More params than the engine can bind.
            CompileError, BindError, BusyTimeoutError, StepError,
            TooLargeError, AllocationError: The batch was aborted.
        """
        connection = self.handle.require_open()

        if not isinstance(sql, str):
            raise ArgumentTypeError("Expected SQL query (a string) as first argument", blamed=sql)

        variable_limit = connection_limit(
            connection, sqlite3.SQLITE_LIMIT_VARIABLE_NUMBER, DEFAULT_VARIABLE_LIMIT
        )
        if len(params) > variable_limit:
            raise TooManyParamsError(f"{len(params)} given, the limit is {variable_limit}")

        connection.set_trace_callback(self._on_statement_start)
        try:
            return self._run_batch(connection, sql, params)
        except MemoryError as e:
            if isinstance(e, AllocationError):
                raise
            raise AllocationError() from None
        finally:
            connection.set_trace_callback(None)

    def _on_statement_start(self, statement: str) -> None:
        self._started = True

    def _run_batch(
        self, connection: sqlite3.Connection, sql: str, params: Sequence[Any]
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        splitter = StatementSplitter(sql)
        bound: list[SqlValue] | None = None

        for statement in splitter:
            cursor = connection.cursor()
            self.handle.statement_opened()
            try:
                self._started = False
                if bound is None:
                    try:
                        bound = self._convert(connection, params)
                    except SqlBridgeError:
                        # A statement that does not compile is reported before its arguments
                        self._check_compiles(cursor, statement)
                        raise
                self._start(cursor, statement, bound)
                column_names = capture_column_names(cursor.description, self.config)
                count = self._collect(cursor, column_names, rows)
                logger.debug(
                    "Executed statement at offset %d (%d row%s)",
                    statement.start,
                    count,
                    "" if count == 1 else "s",
                )
            finally:
                cursor.close()
                self.handle.statement_closed()

        return rows

    def _convert(self, connection: sqlite3.Connection, params: Sequence[Any]) -> list[SqlValue]:
        max_length = connection_limit(connection, sqlite3.SQLITE_LIMIT_LENGTH, INT_MAX)
        return to_sql_params(params, self.config, max_length)

    def _check_compiles(self, cursor: sqlite3.Cursor, statement: Statement) -> None:
        """Compile ``statement`` without running it.

        ``EXPLAIN`` turns the statement into a listing of its program, so
        nothing it would do is carried out.

        Raises:
            CompileError: The statement does not compile.
        """
        text = statement.text
        if text.split(None, 1)[0].upper() != "EXPLAIN":
            text = f"EXPLAIN {text}"
        try:
            cursor.execute(text, [None] * statement.parameter_count)
        except sqlite3.Error as e:
            error = self._translate(e, statement)
            if isinstance(error, CompileError):
                raise error from e
            logger.debug("Compile check at offset %d failed after compiling: %s", statement.start, e)
        finally:
            self._started = False

    def _start(self, cursor: sqlite3.Cursor, statement: Statement, bound: list[SqlValue]) -> None:
        """Compile, bind and take the first step of one statement.

        Arguments beyond the statement's slots are still passed so that the
        engine rejects them; missing ones are left NULL.
        """
        args = list(bound)
        if len(args) < statement.parameter_count:
            args.extend([None] * (statement.parameter_count - len(args)))
        try:
            cursor.execute(statement.text, args)
        except sqlite3.Error as e:
            raise self._translate(e, statement) from e

    def _collect(
        self,
        cursor: sqlite3.Cursor,
        column_names: tuple[str, ...],
        rows: list[dict[str, Any]],
    ) -> int:
        count = 0
        while True:
            try:
                raw = cursor.fetchone()
            except sqlite3.Error as e:
                raise self._translate(e, None) from e
            if raw is None:
                return count
            append_row(rows, collect_row(raw, column_names, self.config))
            count += 1

    def _translate(self, exc: sqlite3.Error, statement: Statement | None) -> SqlBridgeError:
        """Map an engine failure onto the error for the phase it happened in."""
        rep = report_exception(exc)
        blamed = statement.text if statement is not None else None

        if self._started:
            if is_busy(rep.code):
                return BusyTimeoutError.from_report(rep)
            return StepError.from_report(rep, blamed=blamed)

        # Failures raised by the sqlite3 module itself, before stepping,
        # come from binding; the engine had already compiled the statement.
        if getattr(exc, "sqlite_errorcode", None) is None:
            return BindError.from_report(report(SQLITE_RANGE, str(exc)), blamed=blamed)
        return CompileError.from_report(rep, blamed=blamed)
