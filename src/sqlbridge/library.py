"""Function table exported to a host scripting runtime.

A host loads the library once at startup with :func:`load_library` and
keeps the returned :class:`Library`; nothing is stored at module level, so
several independent instances can coexist (one per interpreter, or per
test).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from sqlbridge.config import BridgeConfig
from sqlbridge.database import close_database, get_last_insert_rowid, open_database
from sqlbridge.errors import ArgumentTypeError, SqlBridgeError

LIBRARY_NAME = "sqlbridge"
SUPPORTED_VERSION = ("0", "0")


class LibraryVersionError(SqlBridgeError):
    tag = f"Library `{LIBRARY_NAME}` only works for version 0:0:x"


@dataclass(frozen=True)
class ExternalFunction:
    """A named entry point with a fixed number of arguments."""

    name: str
    arity: int
    fn: Callable[..., Any]

    def __call__(self, *args: Any) -> Any:
        if len(args) != self.arity:
            raise ArgumentTypeError(
                f"'{self.name}' expects {self.arity} argument{'s' if self.arity != 1 else ''}, "
                f"got {len(args)}"
            )
        return self.fn(*args)


@dataclass
class Library:
    """The table of functions a host sees as the ``sqlbridge`` module."""

    config: BridgeConfig
    functions: dict[str, ExternalFunction] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.functions:
            config = self.config
            for fn in (
                ExternalFunction("open", 1, lambda path: open_database(path, config)),
                ExternalFunction("close", 1, close_database),
                ExternalFunction("get-last-insert-rowid", 1, get_last_insert_rowid),
            ):
                self.functions[fn.name] = fn

    def __getitem__(self, name: str) -> ExternalFunction:
        return self.functions[name]

    def __contains__(self, name: object) -> bool:
        return name in self.functions

    def __iter__(self) -> Iterator[str]:
        return iter(self.functions)

    def __len__(self) -> int:
        return len(self.functions)


def check_version(host_version: str) -> bool:
    """Return whether a host version string (``major.minor.patch`` or
    ``major:minor:patch``) is one this library supports."""
    parts = host_version.replace(":", ".").split(".")
    return tuple(parts[:2]) == SUPPORTED_VERSION


def load_library(host_version: str = "0.0.0", config: BridgeConfig | None = None) -> Library:
    """Build the function table for a host.

    Raises:
        LibraryVersionError: The host version is not 0.0.x.
    """
    if not check_version(host_version):
        raise LibraryVersionError(f"host version is {host_version}")
    return Library(config if config is not None else BridgeConfig.from_env())
