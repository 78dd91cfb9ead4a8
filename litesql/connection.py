"""Connection management on top of the ``sqlite3`` engine binding.

:func:`create_sqlite_connection` is the single place engine handles are
opened, so every :class:`Connection` gets the same PRAGMA setup
(busy timeout, foreign keys, optional journal mode, ``sqlite3.Row`` rows).
Transactions are controlled explicitly; the binding's implicit transaction
handling is disabled with ``isolation_level=None``.
"""

from __future__ import annotations

import sqlite3
import weakref
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple, Union

from .errors import BindError, CompileError, ExecutionError, ProgrammingError
from .logging import get_logger
from .result import SUCCESS, Result
from .sqltext import split_statements
from .statement import EngineParameters, Statement
from .transaction import (
    Body,
    Scope,
    TransactionMode,
    run_savepoint,
    run_transaction,
)
from .values import ValueType, to_bindable

if TYPE_CHECKING:
    from .config import ConnectionConfig

logger = get_logger(__name__)

MEMORY_PATH = ":memory:"
DEFAULT_BUSY_TIMEOUT = 5000

TraceCallback = Callable[[str], None]


def resolve_db_path(path: Union[str, Path, None]) -> str:
    """Return ``:memory:`` unchanged, otherwise an expanded filesystem path."""
    if path is None or str(path) in ("", MEMORY_PATH):
        return MEMORY_PATH
    return str(Path(path).expanduser())


def create_sqlite_connection(
    path: Union[str, Path, None],
    *,
    readonly: bool = False,
    busy_timeout: int = DEFAULT_BUSY_TIMEOUT,
    foreign_keys: bool = True,
    journal_mode: Optional[str] = None,
) -> sqlite3.Connection:
    """Open an engine handle with the standard pragmas.

    Read-only file databases are opened with ``mode=ro``; read-only
    in-memory databases use ``PRAGMA query_only``.
    """
    target = resolve_db_path(path)
    if target == MEMORY_PATH:
        conn = sqlite3.connect(MEMORY_PATH, isolation_level=None, check_same_thread=False)
    else:
        uri = Path(target).absolute().as_uri()
        if readonly:
            uri += "?mode=ro"
        conn = sqlite3.connect(uri, uri=True, isolation_level=None, check_same_thread=False)

    try:
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout)}")
        conn.execute(f"PRAGMA foreign_keys = {'ON' if foreign_keys else 'OFF'}")
        if journal_mode and not readonly:
            conn.execute(f"PRAGMA journal_mode = {journal_mode}")
        if readonly:
            conn.execute("PRAGMA query_only = ON")
    except sqlite3.Error:
        conn.close()
        raise
    return conn


class Connection:
    """An open database with statement, counter and transaction operations.

    Not safe for concurrent use: the nesting depth and the statement set are
    unsynchronized, so share a connection across threads only behind an
    external lock.
    """

    def __init__(
        self,
        path: Union[str, Path, None] = MEMORY_PATH,
        *,
        readonly: bool = False,
        trace: Optional[TraceCallback] = None,
        busy_timeout: int = DEFAULT_BUSY_TIMEOUT,
        foreign_keys: bool = True,
        journal_mode: Optional[str] = None,
        default_mode: Union[TransactionMode, str] = TransactionMode.DEFERRED,
        trace_sql: bool = False,
    ) -> None:
        self._path = resolve_db_path(path)
        self._readonly = bool(readonly)
        self._trace = trace
        self._trace_sql = trace_sql
        self.default_mode = TransactionMode.coerce(default_mode)
        try:
            self._raw = create_sqlite_connection(
                self._path,
                readonly=self._readonly,
                busy_timeout=busy_timeout,
                foreign_keys=foreign_keys,
                journal_mode=journal_mode,
            )
        except sqlite3.Error as exc:
            raise ExecutionError(f"cannot open database {self._path}: {exc}") from exc

        self._closed = False
        self._depth = 0
        self._savepoints: List[str] = []
        self._scopes: List[Scope] = []
        self._statements: "weakref.WeakSet[Statement]" = weakref.WeakSet()
        logger.debug(
            "Opened %s connection to %s",
            "read-only" if self._readonly else "read-write",
            self._path,
        )

    @classmethod
    def from_config(
        cls, config: "ConnectionConfig", *, trace: Optional[TraceCallback] = None
    ) -> "Connection":
        config.validate()
        return cls(
            config.path,
            readonly=config.readonly,
            trace=trace,
            busy_timeout=config.busy_timeout,
            foreign_keys=config.foreign_keys,
            journal_mode=config.journal_mode,
            default_mode=config.default_transaction_mode,
            trace_sql=config.trace_sql,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def path(self) -> str:
        return self._path

    @property
    def readonly(self) -> bool:
        return self._readonly

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def depth(self) -> int:
        """Nesting depth: 0 when idle, 1 inside a transaction, +1 per savepoint."""
        return self._depth

    @property
    def savepoints(self) -> Tuple[str, ...]:
        return tuple(self._savepoints)

    @property
    def in_transaction(self) -> bool:
        self._check_open()
        return self._depth > 0 or self._raw.in_transaction

    @property
    def last_insert_id(self) -> Optional[int]:
        """Rowid of the most recent insert, ``None`` before the first one.

        The engine reports 0 both before any insert and after inserting
        rowid 0, so an insert of rowid 0 also reads as ``None``.
        """
        self._check_open()
        rowid = self._raw.execute("SELECT last_insert_rowid()").fetchone()[0]
        return rowid or None

    @property
    def last_change_count(self) -> int:
        """Rows changed by the most recently completed INSERT/UPDATE/DELETE."""
        self._check_open()
        return int(self._raw.execute("SELECT changes()").fetchone()[0])

    @property
    def total_change_count(self) -> int:
        """Rows changed since the connection was opened."""
        self._check_open()
        return int(self._raw.total_changes)

    @property
    def user_version(self) -> int:
        self._check_open()
        self._emit("PRAGMA user_version")
        return int(self._raw.execute("PRAGMA user_version").fetchone()[0])

    @user_version.setter
    def user_version(self, value: int) -> None:
        bindable = to_bindable(value)
        if bindable.type is not ValueType.INTEGER:
            raise BindError(f"user_version must be an integer, not {type(value).__name__}")
        self._control(f"PRAGMA user_version = {bindable.value}").raise_for_failure()

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def prepare(self, query: str, *values: Any) -> Statement:
        """Compile ``query`` and, when ``values`` are given, bind them."""
        self._check_open()
        statement = Statement(self, query)
        self._statements.add(statement)
        if values:
            statement.bind(*values)
        return statement

    def run(self, query: str, *values: Any) -> Result:
        """Prepare and run ``query`` once."""
        with self.prepare(query) as statement:
            return statement.run(*values)

    def scalar(self, query: str, *values: Any) -> Any:
        """Prepare ``query`` and return its first column of the first row."""
        with self.prepare(query) as statement:
            return statement.scalar(*values)

    def execute(self, script: str) -> Result:
        """Run every statement of ``script`` in order, stopping at the first failure."""
        for query in split_statements(script):
            result = self.run(query)
            if result.failed:
                return result
        return SUCCESS

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin(self, mode: Union[TransactionMode, str, None] = None) -> Result:
        """Emit ``BEGIN <mode> TRANSACTION``."""
        mode = TransactionMode.coerce(mode or self.default_mode)
        result = self._control(f"BEGIN {mode.value} TRANSACTION")
        if result.ok:
            self._depth = 1
        return result

    def commit(self) -> Result:
        """Emit ``COMMIT TRANSACTION``."""
        return self._control("COMMIT TRANSACTION")

    def rollback(self) -> Result:
        """Emit ``ROLLBACK TRANSACTION``."""
        return self._control("ROLLBACK TRANSACTION")

    def transaction(self, body: Body, mode: Union[TransactionMode, str, None] = None) -> Result:
        """Run ``body(scope)`` in a transaction and commit or roll back.

        ``body`` returns a :class:`~litesql.transaction.Decision`, a
        :class:`~litesql.result.Result`, or ``None`` (commit unless an
        operation inside failed). Inside an active transaction this opens
        a savepoint instead and ``mode`` is ignored.
        """
        self._check_open()
        return run_transaction(self, body, mode)

    def savepoint(self, body: Body, name: Optional[str] = None) -> Result:
        """Run ``body(scope)`` in a savepoint, named after its depth by default."""
        self._check_open()
        return run_savepoint(self, body, name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Finalize outstanding statements and close the engine handle."""
        if self._closed:
            return
        for statement in list(self._statements):
            statement._release()
        self._statements.clear()
        self._raw.close()
        self._closed = True
        self._depth = 0
        self._savepoints.clear()
        self._scopes.clear()
        logger.debug("Closed connection to %s", self._path)

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"depth={self._depth}"
        return f"<Connection {self._path!r} {state}>"

    # ------------------------------------------------------------------
    # Engine access (used by Statement and the transaction controller)
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise ProgrammingError("cannot operate on a closed connection")

    def _emit(self, sql: str) -> None:
        if self._trace_sql:
            logger.debug("SQL: %s", sql)
        if self._trace is not None:
            self._trace(sql)

    def _compile(self, sql: str, parameters: EngineParameters) -> None:
        self._check_open()
        if not sql.strip():
            raise CompileError("empty query", sql)
        probe = sql if sql.lstrip().upper().startswith("EXPLAIN") else f"EXPLAIN {sql}"
        try:
            self._raw.execute(probe, parameters).close()
        except (sqlite3.Error, sqlite3.Warning) as exc:
            raise CompileError(str(exc), sql) from exc

    def _execute(self, sql: str, parameters: EngineParameters, traced: str) -> sqlite3.Cursor:
        self._check_open()
        self._emit(traced)
        return self._raw.execute(sql, parameters)

    def _control(self, sql: str) -> Result:
        self._check_open()
        self._emit(sql)
        try:
            self._raw.execute(sql)
        except sqlite3.Error as exc:
            logger.warning("%s failed: %s", sql, exc)
            result = Result.from_error(ExecutionError(str(exc), sql))
        else:
            result = SUCCESS
        self._sync()
        return result

    def _sync(self) -> None:
        if not self._raw.in_transaction:
            self._depth = 0
            self._savepoints.clear()
            self._scopes.clear()

    def _push_scope(self, scope: Scope) -> None:
        self._scopes.append(scope)
        if scope.is_savepoint:
            self._depth += 1
            self._savepoints.append(scope.name)

    def _pop_scope(self, scope: Scope) -> None:
        if not self._scopes or self._scopes[-1] is not scope:
            return
        self._scopes.pop()
        if scope.is_savepoint and self._savepoints:
            self._savepoints.pop()
            self._depth = max(self._depth - 1, 0)

    def _note_failure(self, result: Result) -> None:
        if self._scopes:
            self._scopes[-1].note_failure(result)

    def _forget(self, statement: Statement) -> None:
        self._statements.discard(statement)


def open_connection(config: "ConnectionConfig", *, trace: Optional[TraceCallback] = None) -> Connection:
    """Open a :class:`Connection` from a validated configuration."""
    return Connection.from_config(config, trace=trace)
