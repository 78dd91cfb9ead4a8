"""
Shared pytest fixtures for litesql tests.

``db`` is an in-memory connection with a ``users`` table whose executed SQL
is recorded in ``trace`` (a list of strings, cleared after setup).
"""

from typing import Callable, List

import pytest

from litesql import Connection

USERS_TABLE = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    age INTEGER,
    salary REAL,
    admin BOOLEAN NOT NULL DEFAULT 0 CHECK (admin IN (0, 1)),
    avatar BLOB,
    manager_id INTEGER REFERENCES users (id)
)
"""


@pytest.fixture
def trace() -> List[str]:
    return []


@pytest.fixture
def db(trace: List[str]):
    conn = Connection(trace=trace.append)
    result = conn.run(USERS_TABLE)
    assert result.ok, result.reason
    trace.clear()
    yield conn
    conn.close()


@pytest.fixture
def count_sql(trace: List[str]) -> Callable[[str], int]:
    """Return how many times an exact SQL string was executed."""

    def _count(sql: str) -> int:
        return sum(1 for item in trace if item == sql)

    return _count


@pytest.fixture
def insert_user(db: Connection) -> Callable[..., object]:
    def _insert(name: str, age=None, admin: bool = False):
        return db.run(
            "INSERT INTO users (email, age, admin) VALUES (?, ?, ?)",
            f"{name}@example.com",
            age,
            admin,
        )

    return _insert
