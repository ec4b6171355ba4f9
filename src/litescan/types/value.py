"""
Value Types - Column values and type affinity for LiteScan
Handles the storage classes of decoded values, their ordering and the
affinity conversions applied to literals in WHERE clauses.
"""

import re
from enum import Enum
from typing import Any, Optional, Tuple


class Type(Enum):
    """Storage classes, in the order SQLite sorts them"""
    NULL = 0
    INTEGER = 1
    FLOAT = 2
    TEXT = 3
    BLOB = 4


class Affinity(Enum):
    """Column type affinities"""
    INTEGER = 'INTEGER'
    TEXT = 'TEXT'
    BLOB = 'BLOB'
    REAL = 'REAL'
    NUMERIC = 'NUMERIC'


_NUMERIC_TYPES = (Type.INTEGER, Type.FLOAT)

_INTEGER_TEXT = re.compile(r'^\s*[+-]?\d+\s*$')
_REAL_TEXT = re.compile(r'^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$')


class Value:
    """Typed column value decoded from a record"""

    def __init__(self, value_type: Type, value: Any = None):
        self.type = value_type
        self._value = None if value_type == Type.NULL else value

    @property
    def value(self) -> Any:
        return self._value

    @property
    def is_null(self) -> bool:
        return self.type == Type.NULL

    @property
    def is_numeric(self) -> bool:
        return self.type in _NUMERIC_TYPES

    @classmethod
    def null(cls) -> 'Value':
        return cls(Type.NULL)

    @classmethod
    def from_python(cls, obj: Any) -> 'Value':
        """Wrap a plain Python object in the matching storage class"""
        if obj is None:
            return cls(Type.NULL)
        if isinstance(obj, bool):
            return cls(Type.INTEGER, int(obj))
        if isinstance(obj, int):
            return cls(Type.INTEGER, obj)
        if isinstance(obj, float):
            return cls(Type.FLOAT, obj)
        if isinstance(obj, str):
            return cls(Type.TEXT, obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls(Type.BLOB, bytes(obj))
        raise ValueError(f"Cannot convert {type(obj).__name__} to a column value")

    def to_python(self) -> Any:
        return self._value

    def sort_key(self, encoding: Optional[str] = None) -> Tuple[int, Any]:
        """
        Key implementing the record comparison order

        NULL sorts first, then numbers (integers and floats compared by
        value), then text, then blobs.

        Args:
            encoding: When given, text compares as its bytes in this
                encoding (BINARY collation) instead of by code point
        """
        if self.type == Type.NULL:
            return (0, 0)
        if self.type in _NUMERIC_TYPES:
            return (1, self._value)
        if self.type == Type.TEXT:
            if encoding is not None:
                return (2, self._value.encode(encoding, errors='surrogatepass'))
            return (2, self._value)
        return (3, self._value)

    def compare(self, other: 'Value', encoding: Optional[str] = None) -> int:
        """Three-way comparison: -1, 0 or 1"""
        left = self.sort_key(encoding)
        right = other.sort_key(encoding)
        if left < right:
            return -1
        if left > right:
            return 1
        return 0

    def equals(self, other: 'Value') -> bool:
        """SQL equality: NULL is never equal to anything"""
        if self.is_null or other.is_null:
            return False
        return self.compare(other) == 0

    def __eq__(self, other):
        if not isinstance(other, Value):
            return False
        return self.type == other.type and self.value == other.value

    def __hash__(self):
        return hash((self.type, self._value))

    def __repr__(self):
        if self.type == Type.NULL:
            return "NULL"
        elif self.type == Type.TEXT:
            return f"'{self.value}'"
        elif self.type == Type.BLOB:
            return f"X'{self.value.hex().upper()}'"
        else:
            return str(self.value)

    def __str__(self):
        """Display form: NULL renders empty, text renders unquoted"""
        if self.type == Type.NULL:
            return ""
        if self.type == Type.BLOB:
            return self.value.decode('utf-8', errors='replace')
        return str(self.value)


def affinity_for(declared_type: str) -> Affinity:
    """
    Determine column affinity from a declared type name

    Args:
        declared_type: Type name as written in CREATE TABLE (may be empty)

    Returns:
        Affinity following SQLite's substring rules, checked in order
    """
    name = (declared_type or '').upper()
    if 'INT' in name:
        return Affinity.INTEGER
    if 'CHAR' in name or 'CLOB' in name or 'TEXT' in name:
        return Affinity.TEXT
    if 'BLOB' in name or not name:
        return Affinity.BLOB
    if 'REAL' in name or 'FLOA' in name or 'DOUB' in name:
        return Affinity.REAL
    return Affinity.NUMERIC


def apply_affinity(value: Value, affinity: Affinity) -> Value:
    """Convert a literal before comparing it with a column of the given affinity"""
    if value.is_null or affinity == Affinity.BLOB:
        return value

    if affinity == Affinity.TEXT:
        if value.is_numeric:
            return Value(Type.TEXT, str(value.value))
        return value

    # INTEGER, REAL and NUMERIC all turn well-formed numeric text into numbers
    if value.type == Type.TEXT:
        text = value.value
        if _INTEGER_TEXT.match(text):
            return Value(Type.INTEGER, int(text))
        if _REAL_TEXT.match(text):
            number = float(text)
            if affinity != Affinity.REAL and number.is_integer() and abs(number) < 2 ** 63:
                return Value(Type.INTEGER, int(number))
            return Value(Type.FLOAT, number)
    return value
