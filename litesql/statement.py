"""
Prepared statements.

A :class:`Statement` belongs to exactly one :class:`~litesql.connection.Connection`.
Compile, bind and execution problems never escape as exceptions; they are
recorded on :attr:`Statement.result` and returned as failed results.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import BindError, CompileError, ExecutionError, LiteSQLError, ProgrammingError
from .logging import get_logger
from .result import SUCCESS, Result
from .sqltext import Parameters, expand_sql, scan_parameters
from .values import NULL, Storage, Value, to_bindable

if TYPE_CHECKING:
    from .connection import Connection

logger = get_logger(__name__)

EngineParameters = Union[List[Storage], Dict[str, Storage]]


class Statement:
    """One compiled query bound to a connection."""

    def __init__(self, connection: "Connection", sql: str) -> None:
        self._connection = connection
        self.sql = sql
        self.result: Result = SUCCESS
        self._compile_error: Optional[Result] = None
        self._cursor: Optional[sqlite3.Cursor] = None
        self._columns: Tuple[str, ...] = ()
        self._finalized = False

        try:
            self.parameters = scan_parameters(sql)
            if self.parameters.named and self.parameters.anonymous:
                raise CompileError("cannot mix named and positional placeholders", sql)
            bare = [name[1:] for name in self.parameters.names]
            if len(set(bare)) != len(bare):
                clashing = sorted({name for name in bare if bare.count(name) > 1})
                raise CompileError(
                    f"placeholders differ only by prefix: {', '.join(clashing)}", sql
                )
            self._values: List[Value] = [NULL] * self.parameters.count
            connection._compile(sql, self._engine_parameters())
        except CompileError as exc:
            self.parameters = Parameters()
            self._values = []
            self._compile_error = self._fail(exc)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def connection(self) -> "Connection":
        return self._connection

    @property
    def failed(self) -> bool:
        return self.result.failed

    @property
    def reason(self) -> Optional[str]:
        return self.result.reason

    @property
    def columns(self) -> Tuple[str, ...]:
        """Column names reported by the most recent execution."""
        return self._columns

    @property
    def bindings(self) -> Tuple[Value, ...]:
        """Currently bound values, ordered by placeholder index."""
        return tuple(self._values)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def expanded_sql(self) -> str:
        """SQL text with the current bindings rendered as literals."""
        return expand_sql(self.sql, self.parameters, self._values)

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def bind(self, *values: Any) -> "Statement":
        """
        Bind parameters, replacing any earlier bindings.

        Accepts positional values (``bind("a", 1)``), a single list or tuple
        (``bind(["a", 1])``) or a single mapping keyed by placeholder name
        (``bind({"$admin": 0})``). On failure every placeholder is left
        unbound and the failure is recorded on :attr:`result`.

        Returns:
            The statement itself, for chaining.
        """
        self._check_usable()
        if self._compile_error is not None:
            self.result = self._compile_error
            return self

        self.reset()
        try:
            self._values = self._coerce(values)
        except BindError as exc:
            self._values = [NULL] * self.parameters.count
            self.result = self._fail(exc)
        else:
            self.result = SUCCESS
        return self

    def clear_bindings(self) -> "Statement":
        self._check_usable()
        self.reset()
        self._values = [NULL] * self.parameters.count
        return self

    def _coerce(self, values: Sequence[Any]) -> List[Value]:
        if len(values) == 1 and isinstance(values[0], Mapping):
            return self._coerce_named(values[0])
        if len(values) == 1 and isinstance(values[0], (list, tuple)):
            values = tuple(values[0])
        return self._coerce_positional(values)

    def _coerce_positional(self, values: Sequence[Any]) -> List[Value]:
        if self.parameters.named:
            raise BindError("statement uses named parameters; bind them with a mapping")
        if len(values) != self.parameters.count:
            raise BindError(
                f"statement expects {self.parameters.count} parameter(s), {len(values)} given"
            )
        coerced = []
        for index, value in enumerate(values, start=1):
            try:
                coerced.append(to_bindable(value))
            except BindError as exc:
                raise BindError(f"parameter {index}: {exc}") from exc
        return coerced

    def _coerce_named(self, mapping: Mapping) -> List[Value]:
        if self.parameters.anonymous:
            raise BindError("statement uses positional parameters; bind them with a sequence")

        coerced = [NULL] * self.parameters.count
        seen = set()
        for key, value in mapping.items():
            name = self.parameters.resolve(str(key))
            if name is None:
                raise BindError(f"unknown parameter name {key!r}")
            try:
                coerced[self.parameters.names[name] - 1] = to_bindable(value)
            except BindError as exc:
                raise BindError(f"parameter {name}: {exc}") from exc
            seen.add(name)

        missing = sorted(set(self.parameters.names) - seen)
        if missing:
            raise BindError(f"missing value for parameter(s) {', '.join(missing)}")
        return coerced

    def _engine_parameters(self) -> EngineParameters:
        # The engine binding looks named parameters up without their sigil.
        if self.parameters.named:
            return {
                name[1:]: self._values[index - 1].value
                for name, index in self.parameters.names.items()
            }
        return [value.value for value in self._values]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, *values: Any) -> Result:
        """
        Execute to completion, draining any rows.

        Binds ``values`` first when given. Returns the bind or compile
        failure without executing when there is one.
        """
        if not self._prepare_execution(values):
            return self.result

        try:
            cursor = self._start()
            cursor.fetchall()
        except sqlite3.Error as exc:
            self.result = self._fail(ExecutionError(str(exc), self.sql))
        else:
            self.result = SUCCESS
        finally:
            self.reset()
        return self.result

    def scalar(self, *values: Any) -> Any:
        """
        Return the first column of the first row, or ``None`` without rows.

        The value keeps the engine's storage class: ``int``, ``float``,
        ``str``, ``bytes`` or ``None``. Failures are recorded on
        :attr:`result` and yield ``None``.
        """
        if not self._prepare_execution(values):
            return None

        try:
            cursor = self._start()
            row = cursor.fetchone()
        except sqlite3.Error as exc:
            self.result = self._fail(ExecutionError(str(exc), self.sql))
            return None
        finally:
            self.reset()

        self.result = SUCCESS
        if row is None or len(row) == 0:
            return None
        return row[0]

    def rows(self, *values: Any) -> List[sqlite3.Row]:
        """Bind ``values`` (if any) and return every result row."""
        if values:
            self.bind(*values)
            if self.result.failed:
                return []
        return list(self)

    def __iter__(self) -> Iterator[sqlite3.Row]:
        """Step through result rows one at a time."""
        if not self._prepare_execution(()):
            return

        try:
            cursor = self._start()
            for row in cursor:
                yield row
        except sqlite3.Error as exc:
            self.result = self._fail(ExecutionError(str(exc), self.sql))
            return
        finally:
            self.reset()
        self.result = SUCCESS

    def _prepare_execution(self, values: Sequence[Any]) -> bool:
        self._check_usable()
        if self._compile_error is not None:
            self.result = self._compile_error
            return False
        if values:
            self.bind(*values)
            return self.result.ok
        return True

    def _start(self) -> sqlite3.Cursor:
        self.reset()
        cursor = self._connection._execute(
            self.sql, self._engine_parameters(), self.expanded_sql()
        )
        self._cursor = cursor
        self._columns = tuple(column[0] for column in cursor.description or ())
        return cursor

    def _fail(self, error: LiteSQLError) -> Result:
        result = Result.from_error(error)
        logger.debug("%s: %s [%s]", type(error).__name__, error, self.sql)
        self._connection._note_failure(result)
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Close the active cursor; bindings are kept."""
        if self._cursor is not None:
            try:
                self._cursor.close()
            except sqlite3.ProgrammingError:
                # Connection already closed underneath the cursor.
                pass
            self._cursor = None

    def finalize(self) -> None:
        """Release the statement. Any further use raises ``ProgrammingError``."""
        if self._finalized:
            return
        self._release()
        self._connection._forget(self)

    def _release(self) -> None:
        self.reset()
        self._finalized = True

    def _check_usable(self) -> None:
        if self._finalized:
            raise ProgrammingError("cannot use a finalized statement")
        self._connection._check_open()

    def __enter__(self) -> "Statement":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.finalize()

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else repr(self.result)
        return f"<Statement {self.sql!r} {state}>"
