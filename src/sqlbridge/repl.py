"""Interactive shell and script runner for sqlbridge databases."""

from __future__ import annotations

import argparse
import logging
import readline  # noqa: F401 - enables line editing in input()
import sqlite3
import sys
from pathlib import Path
from typing import Any

from sqlbridge.config import BridgeConfig
from sqlbridge.database import DatabaseHandle, open_database
from sqlbridge.errors import SqlBridgeError
from sqlbridge.parsing import StatementSplitter


def parse_param(text: str) -> Any:
    """Turn a command-line parameter into a host value.

    ``null`` is NULL, anything that parses as a number is a Number, and the
    rest is text.
    """
    if text.lower() == "null":
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def format_value(value: Any, max_width: int = 40) -> str:
    """Format a value for display.

    Args:
        value: The value to format
        max_width: Maximum character width before truncating
    """
    if value is None:
        return "NULL"
    elif isinstance(value, float):
        if value.is_integer() and abs(value) < 2**53:
            return str(int(value))
        return f"{value:.15g}"
    elif isinstance(value, bytes):
        s = "x'" + value.hex() + "'"
    else:
        s = str(value)
    if len(s) > max_width:
        return s[:max_width - 3] + "..."
    return s


def print_result(rows: list[dict[str, Any]], out=None) -> None:
    """Print result rows as an aligned table."""
    if out is None:
        out = sys.stdout
    if not rows:
        print("(no results)", file=out)
        return

    # Rows of one batch may come from different statements
    columns: list[str] = []
    for row in rows:
        for col in row:
            if col not in columns:
                columns.append(col)

    col_widths = {col: len(col) for col in columns}
    for row in rows:
        for col in columns:
            col_widths[col] = max(col_widths[col], len(format_value(row.get(col))))

    header = " | ".join(col.ljust(col_widths[col]) for col in columns)
    print(header, file=out)
    print("-" * len(header), file=out)
    for row in rows:
        print(" | ".join(format_value(row.get(col)).ljust(col_widths[col]) for col in columns), file=out)

    print(f"\n({len(rows)} row{'s' if len(rows) != 1 else ''})", file=out)


def print_error(error: SqlBridgeError) -> None:
    print(f"Error: {error.tag}", file=sys.stderr)
    if error.diagnostic:
        print(f"  {error.diagnostic}", file=sys.stderr)


def print_help() -> None:
    """Print help information."""
    print("""
sqlbridge shell

  <sql>;                   Run one or more statements (end with a semicolon)
  .rowid                   Show the rowid of the last insert
  help                     Show this help
  exit, quit               Leave the shell

Statements may span several lines; input continues until the text forms
a complete statement. An empty line cancels a partial statement.
""")


def run_file(file_path: Path, db: DatabaseHandle, params: list[Any], verbose: bool = False) -> int:
    """Execute the statements in a file one by one.

    Args:
        file_path: Path to the file containing SQL
        db: Open database handle
        params: Parameters bound to every statement
        verbose: If True, print each statement before executing

    Returns:
        0 on success, 1 on error
    """
    try:
        content = file_path.read_text()
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    for statement in StatementSplitter(content):
        original = content[statement.start:statement.end]
        if verbose:
            for i, line in enumerate(original.split("\n")):
                prefix = ">>> " if i == 0 else "... "
                print(f"{prefix}{line}")
        try:
            rows = db.execute(original, params)
        except SqlBridgeError as e:
            print_error(e)
            return 1
        if rows:
            print_result(rows)

    return 0


def run_repl(db: DatabaseHandle) -> int:
    """Run the interactive shell."""
    print("sqlbridge shell")
    print(f"Database: {db.path}")
    print("Type 'help' for commands, 'exit' to quit.\n")

    history_file = Path.home() / ".sqlbridge_history"
    try:
        readline.read_history_file(history_file)
    except (FileNotFoundError, OSError):
        pass

    try:
        while True:
            try:
                line = input("sql> ").strip()
            except EOFError:
                print()
                break

            if not line:
                continue

            lower = line.lower()
            if lower in ("exit", "quit"):
                break
            elif lower == "help":
                print_help()
                continue
            elif lower == ".rowid":
                try:
                    print(format_value(db.last_insert_row_id()))
                except SqlBridgeError as e:
                    print_error(e)
                continue

            # Multi-line statements continue until complete
            while not sqlite3.complete_statement(line):
                try:
                    continuation = input("...> ")
                except EOFError:
                    break
                if not continuation.strip():
                    break
                line += "\n" + continuation

            try:
                print_result(db(line))
            except SqlBridgeError as e:
                print_error(e)
            print()
    except KeyboardInterrupt:
        print()

    try:
        readline.write_history_file(history_file)
    except OSError:
        pass

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        description="Run SQL against an SQLite database through sqlbridge"
    )
    arg_parser.add_argument(
        "database",
        nargs="?",
        default=":memory:",
        help="Path to the database file (default: in-memory database)",
    )
    arg_parser.add_argument(
        "-c", "--command",
        type=str,
        help="Execute a batch of statements and exit",
    )
    arg_parser.add_argument(
        "-f", "--file",
        type=Path,
        help="Execute statements from a file and exit",
    )
    arg_parser.add_argument(
        "-p", "--param",
        action="append",
        default=[],
        help="Positional parameter bound to every statement (repeatable; 'null' for NULL)",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print each statement before executing (for -f/--file)",
    )
    arg_parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    args = arg_parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    try:
        config = BridgeConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.file and not args.file.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return 1

    try:
        db = open_database(args.database, config)
    except SqlBridgeError as e:
        print_error(e)
        return 1

    params = [parse_param(p) for p in args.param]
    with db:
        if args.file:
            return run_file(args.file, db, params, args.verbose)

        if args.command:
            try:
                print_result(db.execute(args.command, params))
            except SqlBridgeError as e:
                print_error(e)
                return 1
            return 0

        return run_repl(db)


if __name__ == "__main__":
    sys.exit(main())
