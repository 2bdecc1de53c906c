"""Dynamic value model shared with the host runtime."""

from __future__ import annotations

import math
from collections.abc import Mapping
from enum import Enum
from typing import Any


class ValueKind(Enum):
    """Variants of a host dynamic value."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    RECORD = "record"
    SEQUENCE = "sequence"
    HANDLE = "handle"


# Largest integer a host Number (an IEEE double) represents exactly
MAX_SAFE_INTEGER = 2**53

# Signed 64-bit range of an SQLite INTEGER
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

STRING_TYPES = (str, bytes, bytearray, memoryview)


def kind_of(value: Any) -> ValueKind:
    """Classify a host value.

    Booleans are checked before numbers since ``bool`` is an ``int``
    subclass but is not a Number to the host.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, STRING_TYPES):
        return ValueKind.STRING
    if isinstance(value, Mapping):
        return ValueKind.RECORD
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    return ValueKind.HANDLE


def is_integral(value: int | float) -> bool:
    """Return whether a Number has no fractional part."""
    if isinstance(value, int):
        return True
    return math.isfinite(value) and value.is_integer()


def byte_length(value: str | bytes | bytearray | memoryview) -> int:
    """Return the length in bytes of a String/Blob value."""
    if isinstance(value, str):
        return len(value.encode("utf-8", "surrogateescape"))
    if isinstance(value, memoryview):
        return value.nbytes
    return len(value)


def in_host_range(number: int) -> bool:
    """Return whether an integer is exactly representable as a host Number."""
    return -MAX_SAFE_INTEGER <= number <= MAX_SAFE_INTEGER
