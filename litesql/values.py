"""
Bindable values.

Every parameter crosses into the engine as one of five storage classes.
``to_bindable`` is the single conversion point from host values; anything it
does not recognize is rejected with :class:`~litesql.errors.BindError`.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .errors import BindError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

Storage = Union[None, int, float, str, bytes]


class ValueType(str, Enum):
    """Storage classes understood by the engine."""

    NULL = "null"
    INTEGER = "integer"
    REAL = "real"
    TEXT = "text"
    BLOB = "blob"


@dataclass(frozen=True)
class Value:
    """A value ready to be bound to a placeholder."""

    type: ValueType
    value: Storage = None

    def literal(self) -> str:
        """Render the value as an SQL literal (used for trace output)."""
        if self.type is ValueType.NULL:
            return "NULL"
        if self.type is ValueType.INTEGER:
            return str(self.value)
        if self.type is ValueType.REAL:
            return repr(float(self.value))
        if self.type is ValueType.BLOB:
            return f"X'{bytes(self.value).hex().upper()}'"
        return "'" + str(self.value).replace("'", "''") + "'"


NULL = Value(ValueType.NULL)


def to_bindable(value: Any) -> Value:
    """
    Convert a host value into a :class:`Value`.

    Args:
        value: ``None``, bool, integral number, float, str or a bytes-like
            object. A ``Value`` is returned unchanged.

    Returns:
        The matching ``Value``.

    Raises:
        BindError: For unsupported types or integers outside 64-bit range.
    """
    if isinstance(value, Value):
        return value
    if value is None:
        return NULL
    if isinstance(value, bool):
        return Value(ValueType.INTEGER, int(value))
    if isinstance(value, numbers.Integral):
        number = int(value)
        if not INT64_MIN <= number <= INT64_MAX:
            raise BindError(f"integer {number} does not fit in 64 bits")
        return Value(ValueType.INTEGER, number)
    if isinstance(value, float):
        return Value(ValueType.REAL, float(value))
    if isinstance(value, str):
        return Value(ValueType.TEXT, value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Value(ValueType.BLOB, bytes(value))
    raise BindError(f"cannot bind value of type {type(value).__name__}")
