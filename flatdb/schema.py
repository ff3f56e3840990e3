"""
flatdb/schema.py
Schema: ordered column-name list for a tabular collection.

The schema is persisted as the first line of the table file:
column names joined by the field delimiter, with no quoting.
Because header cells are never quoted, a column name may not contain
the delimiter, a quote character or a newline.
"""

from __future__ import annotations
from typing import Iterable

from flatdb.errors import InvalidInput

DELIMITER = ","
QUOTE = '"'

_FORBIDDEN = (DELIMITER, QUOTE, "\n", "\r")


class Schema:
    """
    Immutable ordered sequence of distinct column names.

    columnIndex lookups are O(1) through a derived name -> position map.
    """

    __slots__ = ("_columns", "_index")

    def __init__(self, columns: Iterable[str]) -> None:
        cols = tuple(str(c).strip() for c in columns)
        if not cols:
            raise InvalidInput("Schema needs at least one column")
        for name in cols:
            if not name:
                raise InvalidInput("Column names must not be empty")
            if any(ch in name for ch in _FORBIDDEN):
                raise InvalidInput(f"Invalid character in column name {name!r}")
        index: dict[str, int] = {}
        for pos, name in enumerate(cols):
            if name in index:
                raise InvalidInput(f"Duplicate column name: {name!r}")
            index[name] = pos
        self._columns = cols
        self._index = index

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def column_count(self) -> int:
        return len(self._columns)

    def column_index(self, name: str) -> int | None:
        """Return the position of `name`, or None if it is not a column."""
        return self._index.get(name)

    def serialize_header(self) -> str:
        return DELIMITER.join(self._columns)

    @classmethod
    def parse_header(cls, text: str) -> "Schema":
        """Split a header line on the delimiter, trimming each field."""
        text = text.rstrip("\r\n")
        return cls(field.strip() for field in text.split(DELIMITER))

    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._columns)

    def __iter__(self):
        return iter(self._columns)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Schema):
            return self._columns == other._columns
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._columns)

    def __repr__(self) -> str:
        return f"Schema({list(self._columns)!r})"
