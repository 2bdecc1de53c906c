"""sqlbridge - run batches of SQL against SQLite from a dynamically typed host."""

from sqlbridge.config import BridgeConfig
from sqlbridge.database import (
    DatabaseHandle,
    HandleState,
    close_database,
    get_last_insert_rowid,
    open_database,
)
from sqlbridge.errors import (
    AllocationError,
    ArgumentTypeError,
    BindError,
    BusyTimeoutError,
    ClosedDatabaseError,
    CloseError,
    CompileError,
    ErrorReport,
    OpenError,
    RangeError,
    SqlBridgeError,
    StepError,
    TooLargeError,
    TooManyParamsError,
)
from sqlbridge.executor import StatementBatchExecutor
from sqlbridge.library import Library, LibraryVersionError, load_library
from sqlbridge.values import ValueKind, kind_of

__all__ = [
    # Main API
    "open_database",
    "close_database",
    "get_last_insert_rowid",
    "DatabaseHandle",
    "HandleState",
    "StatementBatchExecutor",
    "BridgeConfig",
    # Host integration
    "Library",
    "LibraryVersionError",
    "load_library",
    "ValueKind",
    "kind_of",
    # Errors
    "SqlBridgeError",
    "ErrorReport",
    "ArgumentTypeError",
    "ClosedDatabaseError",
    "AllocationError",
    "TooLargeError",
    "TooManyParamsError",
    "CompileError",
    "BindError",
    "BusyTimeoutError",
    "StepError",
    "RangeError",
    "OpenError",
    "CloseError",
]

__version__ = "0.1.0"
