"""
Lexical helpers for SQL text.

The engine binding does not expose placeholder metadata, so placeholders are
found here with a small scanner that skips string literals, quoted
identifiers and comments. Numbering follows the engine: ``?`` takes the next
free index, ``?NNN`` uses ``NNN``, and a repeated ``:name`` / ``@name`` /
``$name`` reuses the index of its first occurrence.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .errors import CompileError
from .values import NULL, Value

SIGILS = ":@$"
MAX_PARAMETER_INDEX = 32766

_PARAM = "param"
_SEMICOLON = "semicolon"


@dataclass(frozen=True)
class Placeholder:
    start: int
    end: int
    index: int
    name: Optional[str] = None


@dataclass(frozen=True)
class Parameters:
    """Placeholders found in one statement."""

    placeholders: Tuple[Placeholder, ...] = ()
    count: int = 0
    names: Dict[str, int] = field(default_factory=dict)

    @property
    def named(self) -> bool:
        return bool(self.names)

    @property
    def anonymous(self) -> bool:
        return any(item.name is None for item in self.placeholders)

    def resolve(self, key: str) -> Optional[str]:
        """Return the placeholder name matching ``key``, with or without sigil."""
        if key in self.names:
            return key
        for sigil in SIGILS:
            if sigil + key in self.names:
                return sigil + key
        return None


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_" or ord(ch) > 127


def _skip_quoted(sql: str, start: int, quote: str) -> int:
    pos = start + 1
    while True:
        end = sql.find(quote, pos)
        if end < 0:
            return len(sql)
        if sql.startswith(quote * 2, end):
            pos = end + 2
            continue
        return end + 1


def _tokens(sql: str) -> Iterator[Tuple[str, int, int]]:
    i, n = 0, len(sql)
    while i < n:
        ch = sql[i]
        if ch in "'\"`":
            i = _skip_quoted(sql, i, ch)
        elif ch == "[":
            end = sql.find("]", i + 1)
            i = n if end < 0 else end + 1
        elif sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end < 0 else end + 1
        elif sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end < 0 else end + 2
        elif ch == "?":
            j = i + 1
            while j < n and sql[j].isdigit():
                j += 1
            yield _PARAM, i, j
            i = j
        elif ch in SIGILS and not (i > 0 and _is_name_char(sql[i - 1])):
            j = i + 1
            while j < n and _is_name_char(sql[j]):
                j += 1
            if j > i + 1:
                yield _PARAM, i, j
            i = j
        elif ch == ";":
            yield _SEMICOLON, i, i + 1
            i += 1
        else:
            i += 1


def scan_parameters(sql: str) -> Parameters:
    """
    Find the placeholders of a single statement.

    Raises:
        CompileError: If a numbered placeholder is out of range.
    """
    placeholders: List[Placeholder] = []
    names: Dict[str, int] = {}
    count = 0
    for kind, start, end in _tokens(sql):
        if kind != _PARAM:
            continue
        text = sql[start:end]
        name: Optional[str] = None
        if text[0] == "?":
            if len(text) > 1:
                index = int(text[1:])
                if not 1 <= index <= MAX_PARAMETER_INDEX:
                    raise CompileError(
                        f"variable number must be between ?1 and ?{MAX_PARAMETER_INDEX}", sql
                    )
            else:
                index = count + 1
        else:
            name = text
            index = names.setdefault(text, count + 1)
        count = max(count, index)
        placeholders.append(Placeholder(start, end, index, name))
    return Parameters(tuple(placeholders), count, names)


def split_statements(script: str) -> List[str]:
    """Split a script into complete statements, keeping trigger bodies whole."""
    statements: List[str] = []
    start = 0
    for kind, _, end in _tokens(script):
        if kind != _SEMICOLON:
            continue
        candidate = script[start:end]
        if sqlite3.complete_statement(candidate):
            statements.append(candidate.strip())
            start = end
    tail = script[start:].strip()
    if tail:
        statements.append(tail)
    return [sql for sql in statements if not _is_blank(sql)]


def _is_blank(sql: str) -> bool:
    """True when ``sql`` holds only whitespace, comments and semicolons."""
    i, n = 0, len(sql)
    while i < n:
        ch = sql[i]
        if ch.isspace() or ch == ";":
            i += 1
        elif sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end < 0 else end + 1
        elif sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end < 0 else end + 2
        else:
            return False
    return True


def quote_literal(text: str) -> str:
    """Quote ``text`` as an SQL string literal, doubling embedded quotes."""
    return "'" + str(text).replace("'", "''") + "'"


def expand_sql(sql: str, parameters: Parameters, values: Sequence[Value]) -> str:
    """Return ``sql`` with each placeholder replaced by its bound literal."""
    if not parameters.placeholders:
        return sql
    parts: List[str] = []
    last = 0
    for item in parameters.placeholders:
        parts.append(sql[last:item.start])
        value = values[item.index - 1] if item.index <= len(values) else NULL
        parts.append(value.literal())
        last = item.end
    parts.append(sql[last:])
    return "".join(parts)
