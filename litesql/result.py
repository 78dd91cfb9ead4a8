"""
Outcome type for statement and transaction operations.

A :class:`Result` is either a success or a failure carrying a reason. Steps
are composed with :meth:`Result.and_then` (run the next step only after a
success) and :meth:`Result.or_else` (run a fallback only after a failure)::

    txn = (
        db.begin()
        .and_then(lambda: stmt.run("alice@example.com", 1))
        .and_then(db.commit)
    )
    txn.or_else(db.rollback)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .errors import LiteSQLError


@dataclass(frozen=True)
class Result:
    """Success when ``reason`` is ``None``, failure otherwise."""

    reason: Optional[str] = None
    error: Optional[LiteSQLError] = None

    @classmethod
    def success(cls) -> "Result":
        return SUCCESS

    @classmethod
    def failure(cls, reason: str, error: Optional[LiteSQLError] = None) -> "Result":
        return cls(reason=str(reason or "unknown error"), error=error)

    @classmethod
    def from_error(cls, error: LiteSQLError) -> "Result":
        return cls.failure(str(error), error)

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def failed(self) -> bool:
        return self.reason is not None

    def __bool__(self) -> bool:
        return self.ok

    def and_then(self, step: Callable[[], "Result"]) -> "Result":
        """Run ``step`` after a success; a failure short-circuits."""
        if self.failed:
            return self
        return step()

    def or_else(self, fallback: Callable[[], "Result"]) -> "Result":
        """Run ``fallback`` after a failure; a success is returned as-is."""
        if self.ok:
            return self
        return fallback()

    def raise_for_failure(self) -> None:
        """Raise the carried error (or a ``LiteSQLError``) when failed."""
        if self.ok:
            return
        if self.error is not None:
            raise self.error
        raise LiteSQLError(self.reason)

    def __repr__(self) -> str:
        if self.ok:
            return "Result(success)"
        return f"Result(failure={self.reason!r})"


SUCCESS = Result()


def chain(*steps: Callable[[], Result]) -> Result:
    """Run ``steps`` in order, stopping at the first failure."""
    result = SUCCESS
    for step in steps:
        result = result.and_then(step)
        if result.failed:
            break
    return result
