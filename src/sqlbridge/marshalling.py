"""Conversion between host dynamic values and SQLite values."""

from __future__ import annotations

from typing import Any, Union

from sqlbridge.config import DEFAULT_CONFIG, PLACEHOLDER_TEXT, BridgeConfig
from sqlbridge.errors import (
    SQLITE_TOOBIG,
    BindError,
    TooLargeError,
    report,
)
from sqlbridge.values import INT64_MAX, INT64_MIN, ValueKind, byte_length, is_integral, kind_of

# Used when the connection cannot report SQLITE_LIMIT_LENGTH
INT_MAX = 2**31 - 1

SqlValue = Union[None, int, float, str, bytes]


def to_sql_param(
    value: Any,
    index: int,
    config: BridgeConfig = DEFAULT_CONFIG,
    max_length: int = INT_MAX,
) -> SqlValue:
    """Convert a host value into something the engine can bind at ``index``.

    Args:
        value: The host value, borrowed read-only.
        index: 1-based parameter position, used in error messages.
        config: Decides how unsupported values are handled.
        max_length: Largest text/blob the engine accepts, in bytes.

    Raises:
        TooLargeError: A string or blob is longer than ``max_length``.
        BindError: The value has no SQL counterpart and the config says to
            reject it, or a string is not valid UTF-8.
    """
    kind = kind_of(value)

    if kind is ValueKind.NULL:
        return None

    if kind is ValueKind.NUMBER:
        if is_integral(value) and INT64_MIN <= value <= INT64_MAX:
            return int(value)
        try:
            return float(value)
        except OverflowError:
            raise TooLargeError.from_report(report(SQLITE_TOOBIG), blamed=value) from None

    if kind is ValueKind.STRING:
        if isinstance(value, str):
            try:
                length = len(value.encode("utf-8"))
            except UnicodeEncodeError as e:
                raise BindError(f"parameter {index} is not valid UTF-8 text: {e.reason}", blamed=value) from None
            converted: SqlValue = value
        else:
            converted = bytes(value)
            length = len(converted)
        if length > max_length:
            raise TooLargeError.from_report(report(SQLITE_TOOBIG), blamed=value)
        return converted

    if config.unsupported_params == "placeholder":
        return PLACEHOLDER_TEXT
    raise BindError(
        f"parameter {index} has unsupported type {kind.value}",
        blamed=value,
    )


def to_sql_params(
    params: tuple[Any, ...] | list[Any],
    config: BridgeConfig = DEFAULT_CONFIG,
    max_length: int = INT_MAX,
) -> list[SqlValue]:
    """Convert call arguments in positional order, index 1 first."""
    return [to_sql_param(value, i, config, max_length) for i, value in enumerate(params, start=1)]


def from_sql_column(value: SqlValue, config: BridgeConfig = DEFAULT_CONFIG) -> Any:
    """Convert one column of the current row into a host value.

    Integers become doubles, so values beyond 2**53 lose precision.
    """
    if value is None:
        return None

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, (str, bytes)):
        # A str never holds fewer bytes than characters
        if len(value) > config.max_value_length or (
            isinstance(value, str) and byte_length(value) > config.max_value_length
        ):
            raise TooLargeError("column value exceeds the host length limit")
        return value

    raise AssertionError(f"unexpected column value type: {type(value).__name__}")
