"""Building result records from statement rows."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlbridge.config import DEFAULT_CONFIG, BridgeConfig
from sqlbridge.errors import AllocationError, StepError
from sqlbridge.marshalling import from_sql_column


def capture_column_names(
    description: Sequence[Sequence[Any]] | None,
    config: BridgeConfig = DEFAULT_CONFIG,
) -> tuple[str, ...]:
    """Return the column names of a compiled statement.

    ``description`` is the cursor's DB-API description; statements that
    return no data have none. Names are captured once per statement, before
    any row is fetched.

    Raises:
        StepError: Two columns share a name and the config rejects that.
    """
    if not description:
        return ()
    names = tuple(column[0] for column in description)
    if config.duplicate_columns == "error":
        seen: set[str] = set()
        for name in names:
            if name in seen:
                raise StepError(f"duplicate column name {name!r} in result", blamed=name)
            seen.add(name)
    return names


def collect_row(
    raw_row: Sequence[Any],
    column_names: Sequence[str],
    config: BridgeConfig = DEFAULT_CONFIG,
) -> dict[str, Any]:
    """Convert the statement's current row into a record.

    The record has one entry per column name; with duplicate names the
    later column wins. A conversion failure discards the whole row.
    """
    try:
        row: dict[str, Any] = {}
        for name, value in zip(column_names, raw_row):
            row[name] = from_sql_column(value, config)
    except MemoryError:
        raise AllocationError() from None
    return row


def append_row(rows: list[dict[str, Any]], row: dict[str, Any]) -> None:
    """Append a collected row to the running result sequence."""
    try:
        rows.append(row)
    except MemoryError:
        raise AllocationError() from None
