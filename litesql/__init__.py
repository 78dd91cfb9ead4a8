"""
litesql: connections, prepared statements, parameter binding and nestable
transactions over the embedded SQLite engine.
"""

from __future__ import annotations

from .connection import Connection, create_sqlite_connection, open_connection, resolve_db_path
from .errors import BindError, CompileError, ExecutionError, LiteSQLError, ProgrammingError
from .result import SUCCESS, Result, chain
from .statement import Statement
from .transaction import Decision, Scope, TransactionMode, savepoint_scope, transaction_scope
from .values import NULL, Value, ValueType, to_bindable

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Connection",
    "create_sqlite_connection",
    "open_connection",
    "resolve_db_path",
    "Statement",
    "Result",
    "SUCCESS",
    "chain",
    "Decision",
    "Scope",
    "TransactionMode",
    "transaction_scope",
    "savepoint_scope",
    "Value",
    "ValueType",
    "NULL",
    "to_bindable",
    "LiteSQLError",
    "CompileError",
    "BindError",
    "ExecutionError",
    "ProgrammingError",
]
