"""
flatdb/collection.py
Capability shared by both storage backends.

TableFile (schema-typed rows) and DocumentFile (schema-less JSON lines)
both satisfy Collection, so callers that only insert and scan can work
with either without knowing which backend holds the data.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable


@runtime_checkable
class Collection(Protocol):
    name: str
    path: Path

    def insert(self, record: Any) -> Any:
        """Persist one record."""
        ...

    def scan(self) -> Iterator[Any]:
        """Yield every stored record in file order, re-reading the file."""
        ...

    def count(self) -> int:
        ...
