"""Error taxonomy and the reporter that turns SQLite result codes into messages."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any

# Primary SQLite result codes used by this package
SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_BUSY = 5
SQLITE_NOMEM = 7
SQLITE_TOOBIG = 18
SQLITE_RANGE = 25

UNAVAILABLE_MESSAGE = "Unable to show error message (out of memory, unable to allocate string)"

# Text returned by sqlite3_errstr() for each primary result code
_ERRSTR: dict[int, str] = {
    0: "not an error",
    1: "SQL logic error",
    3: "access permission denied",
    4: "query aborted",
    5: "database is locked",
    6: "database table is locked",
    7: "out of memory",
    8: "attempt to write a readonly database",
    9: "interrupted",
    10: "disk I/O error",
    11: "database disk image is malformed",
    12: "unknown operation",
    13: "database or disk is full",
    14: "unable to open database file",
    15: "locking protocol",
    17: "database schema has changed",
    18: "string or blob too big",
    19: "constraint failed",
    20: "datatype mismatch",
    21: "bad parameter or other API misuse",
    22: "large file support is disabled",
    23: "authorization denied",
    25: "column index out of range",
    26: "file is not a database",
    27: "notification message",
    28: "warning message",
    100: "another row available",
    101: "no more rows available",
}


class SqlBridgeError(Exception):
    """Base class for every failure reported to the host.

    ``tag`` is the short fixed message hosts match on; ``diagnostic`` is the
    human-readable detail (usually from the engine) and ``blamed`` is the
    argument that caused the failure, if any.
    """

    tag = "SQL bridge error"

    def __init__(
        self,
        diagnostic: str | None = None,
        *,
        code: int | None = None,
        blamed: Any = None,
        tag: str | None = None,
    ) -> None:
        if tag is not None:
            self.tag = tag
        self.diagnostic = diagnostic
        self.code = code
        self.blamed = blamed
        super().__init__(self.tag if diagnostic is None else f"{self.tag}: {diagnostic}")

    @classmethod
    def from_report(cls, report: ErrorReport, **kwargs: Any) -> SqlBridgeError:
        return cls(report.message, code=report.code, **kwargs)


class ArgumentTypeError(SqlBridgeError, TypeError):
    tag = "Wrong argument type"


class ClosedDatabaseError(SqlBridgeError):
    tag = "Database has been closed"


class AllocationError(SqlBridgeError, MemoryError):
    tag = "Out of memory"


class TooLargeError(SqlBridgeError):
    tag = "Text/blob too large"


class TooManyParamsError(SqlBridgeError):
    tag = "Too many parameters"


class CompileError(SqlBridgeError):
    tag = "SQL compiler error"


class BindError(SqlBridgeError):
    tag = "SQL parameter error"


class BusyTimeoutError(SqlBridgeError):
    tag = "Database is busy (timeout)"


class StepError(SqlBridgeError):
    tag = "SQL error"


class RangeError(SqlBridgeError):
    tag = "Id out of range"


class OpenError(SqlBridgeError):
    tag = "Unable to open database"


class CloseError(SqlBridgeError):
    tag = "Unable to close database"


@dataclass(frozen=True)
class ErrorReport:
    """Diagnostic attached to a failure, separate from its tag."""

    code: int | None
    message: str


def errstr(code: int) -> str:
    """Return SQLite's English description of a result code."""
    return _ERRSTR.get(code & 0xFF, "unknown error")


def is_busy(code: int | None) -> bool:
    return code is not None and code & 0xFF == SQLITE_BUSY


def report(code: int | None, detail: str | None = None) -> ErrorReport:
    """Build the diagnostic for a native result code.

    The engine's detailed message is appended when it adds something to the
    generic description. If building the text fails the report falls back to
    a fixed message instead of failing the error path.
    """
    try:
        message = errstr(code) if code is not None else ""
        if detail and detail != message:
            message = f"{message} ({detail})" if message else detail
        return ErrorReport(code, message or "unknown error")
    except MemoryError:
        return ErrorReport(code, UNAVAILABLE_MESSAGE)


def report_exception(exc: BaseException) -> ErrorReport:
    """Build a report from an exception raised by the ``sqlite3`` module."""
    code = getattr(exc, "sqlite_errorcode", None)
    if code is None and isinstance(exc, sqlite3.ProgrammingError):
        code = 21  # SQLITE_MISUSE
    try:
        detail = str(exc)
    except MemoryError:
        return ErrorReport(code, UNAVAILABLE_MESSAGE)
    return report(code, detail)
