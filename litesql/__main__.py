"""
Command-line entry point for litesql.

Runs single statements, scripts and user-version updates against a
database file.
"""

import argparse
from pathlib import Path
from typing import Any

from litesql.logging import (
    configure_logging_from_args,
    exception_exc_info,
    format_exception_summary,
    get_logger,
)


def build_parser() -> argparse.ArgumentParser:
    """
    Build the main argument parser with subcommands.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="litesql",
        description="Run SQL against an SQLite database",
        epilog="Use 'litesql <command> --help' for more information on a specific command.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration file (.json, .yaml or .yml)",
    )
    parser.add_argument(
        "--database",
        help="Database file (overrides the configured path; default :memory:)",
    )
    parser.add_argument(
        "--readonly",
        action="store_true",
        default=None,
        help="Open the database read-only",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (DEBUG level, logs executed SQL)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (overrides --verbose)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        required=True,
    )

    run_parser = subparsers.add_parser("run", help="Run one statement")
    run_parser.add_argument("sql", help="SQL statement")
    run_parser.add_argument("params", nargs="*", help="Positional parameter values")

    scalar_parser = subparsers.add_parser("scalar", help="Print the first column of the first row")
    scalar_parser.add_argument("sql", help="SQL query")
    scalar_parser.add_argument("params", nargs="*", help="Positional parameter values")

    script_parser = subparsers.add_parser("script", help="Run a SQL script in one transaction")
    script_parser.add_argument("file", type=Path, help="Script file")

    version_parser = subparsers.add_parser("user-version", help="Print or set the user version")
    version_parser.add_argument("value", nargs="?", type=int, help="New user version")

    return parser


def parse_param(text: str) -> Any:
    """Interpret a command-line parameter as NULL, integer, real or text."""
    if text.upper() == "NULL":
        return None
    for kind in (int, float):
        try:
            return kind(text)
        except ValueError:
            continue
    return text


def _load_config(args: argparse.Namespace):
    from litesql.config import ConnectionConfig, load_config_from_file

    config = load_config_from_file(args.config) if args.config else ConnectionConfig()
    if args.database:
        config.path = args.database
    if args.readonly:
        config.readonly = True
    if args.verbose or args.log_level == "DEBUG":
        config.trace_sql = True
    config.validate()
    return config


def _dispatch(args: argparse.Namespace, db) -> int:
    if args.command == "run":
        result = db.run(args.sql, [parse_param(p) for p in args.params])
        if result.failed:
            print(f"Error: {result.reason}")
            return 1
        print(f"{db.last_change_count} row(s) changed")
        return 0

    if args.command == "scalar":
        statement = db.prepare(args.sql)
        value = statement.scalar([parse_param(p) for p in args.params])
        if statement.failed:
            print(f"Error: {statement.reason}")
            return 1
        print("NULL" if value is None else value)
        return 0

    if args.command == "script":
        script = args.file.read_text(encoding="utf-8")
        result = db.transaction(lambda txn: db.execute(script))
        if result.failed:
            print(f"Error: {result.reason}")
            return 1
        return 0

    if args.command == "user-version":
        if args.value is not None:
            db.user_version = args.value
        print(db.user_version)
        return 0

    return 1


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the litesql CLI.

    Args:
        argv: Command-line arguments (for testing)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging_from_args(
        verbose=args.verbose,
        log_level=args.log_level,
        log_file=str(args.log_file) if args.log_file else None,
    )

    logger = get_logger(__name__)
    logger.debug("Parsed arguments: %s", args)

    from litesql.connection import Connection
    from litesql.errors import LiteSQLError

    try:
        config = _load_config(args)
        with Connection.from_config(config) as db:
            return _dispatch(args, db)
    except (FileNotFoundError, ValueError, LiteSQLError) as exc:
        logger.debug("Command failed", exc_info=exception_exc_info(exc))
        print(f"Error: {format_exception_summary(exc)}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
