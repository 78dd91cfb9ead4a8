"""
Connection configuration model.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_DATABASE_PATH = ":memory:"
DEFAULT_BUSY_TIMEOUT = 5000
DEFAULT_TRANSACTION_MODE = "deferred"

JOURNAL_MODES = frozenset({"delete", "truncate", "persist", "memory", "wal", "off"})
TRANSACTION_MODES = ("deferred", "immediate", "exclusive")


@dataclass
class ConnectionConfig:
    """
    Settings used to open a :class:`~litesql.connection.Connection`.
    """

    path: str = DEFAULT_DATABASE_PATH
    """Database file path, or ``:memory:``."""

    readonly: bool = False
    """Open the database read-only. Fixed for the connection's lifetime."""

    busy_timeout: int = DEFAULT_BUSY_TIMEOUT
    """Milliseconds to wait on a locked database before failing."""

    foreign_keys: bool = True
    """Enforce foreign key constraints."""

    journal_mode: Optional[str] = None
    """Journal mode to set on open; ``None`` keeps the engine default."""

    default_transaction_mode: str = DEFAULT_TRANSACTION_MODE
    """Mode used by ``begin``/``transaction`` when none is given."""

    trace_sql: bool = False
    """Log every executed statement at DEBUG level."""

    def __post_init__(self) -> None:
        if isinstance(self.path, Path):
            self.path = str(self.path)
        self.path = str(self.path or DEFAULT_DATABASE_PATH).strip()
        if self.journal_mode is not None:
            self.journal_mode = str(self.journal_mode).strip().lower() or None
        self.default_transaction_mode = str(
            self.default_transaction_mode or DEFAULT_TRANSACTION_MODE
        ).strip().lower()

    @property
    def is_memory(self) -> bool:
        return self.path == DEFAULT_DATABASE_PATH

    def validate(self) -> None:
        if not self.path:
            raise ValueError("database.path must be set")
        if isinstance(self.busy_timeout, bool) or not isinstance(self.busy_timeout, int):
            raise ValueError("database.busy_timeout must be an integer")
        if self.busy_timeout < 0:
            raise ValueError("database.busy_timeout must be >= 0")
        if self.journal_mode is not None and self.journal_mode not in JOURNAL_MODES:
            raise ValueError(
                f"database.journal_mode must be one of: {', '.join(sorted(JOURNAL_MODES))}"
            )
        if self.default_transaction_mode not in TRANSACTION_MODES:
            raise ValueError(
                f"database.default_transaction_mode must be one of: {', '.join(TRANSACTION_MODES)}"
            )
        if self.readonly and self.journal_mode is not None:
            raise ValueError("database.journal_mode cannot be set on a read-only connection")
