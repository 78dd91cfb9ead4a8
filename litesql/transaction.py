"""Savepoint-aware transaction control.

A top-level unit of work uses ``BEGIN <mode> TRANSACTION`` and ends with
``COMMIT TRANSACTION`` or ``ROLLBACK TRANSACTION``. Nested units use
``SAVEPOINT``/``RELEASE SAVEPOINT``/``ROLLBACK TO SAVEPOINT``, named after
their nesting depth unless the caller supplies a name.

Two front ends share the same state machine:

* callback form, returning a :class:`~litesql.result.Result`::

      db.transaction(lambda txn: stmt.run("alice@example.com", 1))

* context-manager form, raising on failure::

      with transaction_scope(db):
          db.run("INSERT …")
          with savepoint_scope(db):          # nested, SAVEPOINT '2'
              db.run("UPDATE …")
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, Tuple, Union

from .logging import get_logger
from .result import SUCCESS, Result
from .sqltext import quote_literal

if TYPE_CHECKING:
    from .connection import Connection

logger = get_logger(__name__)


class TransactionMode(str, Enum):
    """Locking behavior of a top-level ``BEGIN``."""

    DEFERRED = "DEFERRED"
    IMMEDIATE = "IMMEDIATE"
    EXCLUSIVE = "EXCLUSIVE"

    @classmethod
    def coerce(cls, value: Union["TransactionMode", str]) -> "TransactionMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(
                f"Unknown transaction mode: {value!r}. "
                f"Use one of: {', '.join(mode.value.lower() for mode in cls)}"
            ) from None


class Decision(str, Enum):
    """Explicit outcome a transaction body can return."""

    COMMIT = "commit"
    ROLLBACK = "rollback"


Outcome = Union[Decision, Result, None]
Body = Callable[["Scope"], Outcome]


class Scope:
    """Handle passed to a transaction or savepoint body.

    Tracks the first failure of an operation run directly inside the scope.
    Once one is recorded the scope rolls back, whatever the body returns.
    """

    def __init__(self, connection: "Connection", name: Optional[str] = None, implicit: bool = False) -> None:
        self.connection = connection
        self.name = name
        self.implicit = implicit
        self.failure: Optional[Result] = None
        self.requested: Optional[Result] = None

    @property
    def is_savepoint(self) -> bool:
        return self.name is not None

    @property
    def label(self) -> str:
        return f"savepoint {quote_literal(self.name)}" if self.is_savepoint else "transaction"

    def note_failure(self, result: Result) -> None:
        if self.failure is None:
            self.failure = result

    def rollback(self, reason: str = "rollback requested") -> Result:
        """Request a rollback when the body finishes."""
        self.requested = Result.failure(reason)
        return self.requested

    def resolve(self, outcome: Any) -> Result:
        """Turn a body's return value into the result that decides the ending."""
        if self.requested is not None:
            return self.requested
        if not isinstance(outcome, (Decision, Result)) and outcome is not None:
            raise TypeError(
                f"transaction body returned {type(outcome).__name__}; "
                "expected Decision, Result or None"
            )
        # A failure recorded in this scope always rolls back.
        if isinstance(outcome, Result) and outcome.failed:
            return outcome
        if self.failure is not None:
            return self.failure
        if outcome is Decision.ROLLBACK:
            return Result.failure(f"{self.label} rolled back")
        return SUCCESS

    def __repr__(self) -> str:
        return f"<Scope {self.label}>"


def _enter(
    connection: "Connection",
    *,
    savepoint: bool,
    mode: Union[TransactionMode, str, None] = None,
    name: Optional[str] = None,
) -> Tuple[Scope, Result]:
    if not savepoint:
        scope = Scope(connection)
        started = connection.begin(mode)
    else:
        if name is None:
            name = str(connection.depth + 1)
        scope = Scope(connection, str(name), implicit=not connection.in_transaction)
        started = connection._control(f"SAVEPOINT {quote_literal(scope.name)}")
    if started.ok:
        connection._push_scope(scope)
    return scope, started


def _exit(connection: "Connection", scope: Scope, outcome: Result) -> Result:
    connection._pop_scope(scope)

    if not scope.is_savepoint:
        if outcome.ok:
            committed = connection.commit()
            if committed.ok:
                return SUCCESS
            logger.warning("Commit failed, rolling back: %s", committed.reason)
            if connection.in_transaction:
                connection.rollback()
            return committed
        connection.rollback()
        logger.debug("Rolled back transaction: %s", outcome.reason)
        return outcome

    quoted = quote_literal(scope.name)
    if outcome.ok:
        released = connection._control(f"RELEASE SAVEPOINT {quoted}")
        if released.ok:
            return SUCCESS
        logger.warning("Release of %s failed: %s", scope.label, released.reason)
        outcome = released

    connection._control(f"ROLLBACK TO SAVEPOINT {quoted}")
    if scope.implicit and connection.in_transaction:
        # An outermost savepoint opened the transaction; end it.
        connection.rollback()
    logger.debug("Rolled back %s: %s", scope.label, outcome.reason)
    return outcome


def _run(connection: "Connection", scope: Scope, body: Body) -> Result:
    try:
        outcome = scope.resolve(body(scope))
    except BaseException:
        _exit(connection, scope, Result.failure(f"{scope.label} body raised"))
        raise
    return _exit(connection, scope, outcome)


def run_transaction(
    connection: "Connection",
    body: Body,
    mode: Union[TransactionMode, str, None] = None,
) -> Result:
    """Run ``body`` inside a transaction, or a savepoint when already in one."""
    scope, started = _enter(connection, savepoint=connection.in_transaction, mode=mode)
    if started.failed:
        return started
    return _run(connection, scope, body)


def run_savepoint(connection: "Connection", body: Body, name: Optional[str] = None) -> Result:
    """Run ``body`` inside a savepoint named ``name`` (default: its depth)."""
    scope, started = _enter(connection, savepoint=True, name=name)
    if started.failed:
        return started
    return _run(connection, scope, body)


@contextmanager
def _scope_block(connection: "Connection", scope: Scope, started: Result) -> Iterator[Scope]:
    started.raise_for_failure()
    try:
        yield scope
    except BaseException:
        _exit(connection, scope, Result.failure(f"{scope.label} block raised"))
        raise
    requested = scope.requested is not None
    result = _exit(connection, scope, scope.resolve(None))
    if result.failed and not requested:
        result.raise_for_failure()


@contextmanager
def transaction_scope(
    connection: "Connection",
    mode: Union[TransactionMode, str, None] = None,
) -> Iterator[Scope]:
    """Context-manager transaction; nested use turns into a savepoint.

    Commits on normal exit and rolls back when the block raises, when an
    operation inside it failed, or when ``scope.rollback()`` was called.
    A failed operation or commit is re-raised as its ``LiteSQLError``.
    """
    scope, started = _enter(connection, savepoint=connection.in_transaction, mode=mode)
    with _scope_block(connection, scope, started):
        yield scope


@contextmanager
def savepoint_scope(connection: "Connection", name: Optional[str] = None) -> Iterator[Scope]:
    """Context-manager savepoint, released on success and rolled back to on failure."""
    scope, started = _enter(connection, savepoint=True, name=name)
    with _scope_block(connection, scope, started):
        yield scope
