"""Runtime configuration for database handles."""

from __future__ import annotations

import dataclasses
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

ENV_PREFIX = "SQLBRIDGE_"

UNSUPPORTED_PARAM_POLICIES = ("error", "placeholder")
DUPLICATE_COLUMN_POLICIES = ("last", "error")

# Text bound in place of a value the engine has no type for
PLACEHOLDER_TEXT = "Unknown"


@dataclass(frozen=True)
class BridgeConfig:
    """Settings applied when opening and querying a database.

    Attributes:
        busy_timeout_ms: How long the engine retries a locked database before
            reporting busy.
        unsupported_params: What to do with parameters that have no SQL
            counterpart: ``"error"`` raises BindError, ``"placeholder"`` binds
            the text ``"Unknown"``.
        duplicate_columns: ``"last"`` lets a later column overwrite an
            earlier one with the same name, ``"error"`` rejects the statement.
        max_value_length: Largest text/blob, in bytes, the host accepts from
            a result column.
    """

    busy_timeout_ms: int = 1000
    unsupported_params: str = "error"
    duplicate_columns: str = "last"
    max_value_length: int = sys.maxsize

    def __post_init__(self) -> None:
        if self.busy_timeout_ms < 0:
            raise ValueError(f"busy_timeout_ms must be >= 0, got {self.busy_timeout_ms}")
        if self.unsupported_params not in UNSUPPORTED_PARAM_POLICIES:
            raise ValueError(
                f"unsupported_params must be one of {UNSUPPORTED_PARAM_POLICIES}, "
                f"got {self.unsupported_params!r}"
            )
        if self.duplicate_columns not in DUPLICATE_COLUMN_POLICIES:
            raise ValueError(
                f"duplicate_columns must be one of {DUPLICATE_COLUMN_POLICIES}, "
                f"got {self.duplicate_columns!r}"
            )
        if self.max_value_length < 0:
            raise ValueError(f"max_value_length must be >= 0, got {self.max_value_length}")

    @property
    def busy_timeout_seconds(self) -> float:
        return self.busy_timeout_ms / 1000

    def replace(self, **changes: Any) -> BridgeConfig:
        """Return a copy with some fields changed."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BridgeConfig:
        """Build a config from ``SQLBRIDGE_*`` environment variables.

        Unset variables keep their defaults.
        """
        if environ is None:
            environ = os.environ

        changes: dict[str, Any] = {}
        for field in dataclasses.fields(cls):
            raw = environ.get(ENV_PREFIX + field.name.upper())
            if raw is None:
                continue
            if field.type == "int":
                try:
                    changes[field.name] = int(raw)
                except ValueError:
                    raise ValueError(f"{ENV_PREFIX}{field.name.upper()} must be an integer, got {raw!r}") from None
            else:
                changes[field.name] = raw.strip().lower()
        return cls(**changes)


DEFAULT_CONFIG = BridgeConfig()
