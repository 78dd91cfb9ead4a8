"""Error taxonomy for the SQL access layer.

Compile, bind and execution errors are normally carried inside a failed
:class:`~litesql.result.Result`; only :class:`ProgrammingError` is raised
directly, because it signals misuse rather than a runtime outcome.
"""

from __future__ import annotations


class LiteSQLError(RuntimeError):
    """Base class for every error produced by litesql."""


class CompileError(LiteSQLError):
    """Raised when a query cannot be compiled by the engine."""

    def __init__(self, message: str, sql: str = "") -> None:
        self.sql = sql
        super().__init__(message)


class BindError(LiteSQLError):
    """Raised when parameters do not match a statement's placeholders."""


class ExecutionError(LiteSQLError):
    """Raised when the engine reports an error while executing a statement."""

    def __init__(self, message: str, sql: str = "") -> None:
        self.sql = sql
        super().__init__(message)


class ProgrammingError(LiteSQLError):
    """Raised on use of a finalized statement or a closed connection."""
