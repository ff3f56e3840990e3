"""
flatdb/errors.py
Exception hierarchy for flatdb.

Every error derives from FlatDBError and from the closest builtin, so
`except ValueError` / `except OSError` style callers keep working.
"""

from __future__ import annotations
from pathlib import Path


class FlatDBError(Exception):
    """Base class for all flatdb errors."""


class NotFound(FlatDBError, LookupError):
    """A collection that must exist does not."""


class AlreadyExists(FlatDBError, ValueError):
    """A collection of that name already exists."""


class ArityMismatch(FlatDBError, ValueError):
    """A row's value count disagrees with its schema's column count."""

    def __init__(self, got: int, expected: int) -> None:
        super().__init__(f"Row has {got} values but schema expects {expected}")
        self.got = got
        self.expected = expected


class InvalidInput(FlatDBError, ValueError):
    """Malformed payload or a record that cannot carry an identifier."""


class DecodeError(FlatDBError, ValueError):
    """A persisted line cannot be parsed back into the expected shape."""

    def __init__(self, message: str, path: Path | None = None, line_no: int | None = None) -> None:
        where = ""
        if path is not None:
            where = f" ({path}" + (f", line {line_no}" if line_no is not None else "") + ")"
        super().__init__(f"{message}{where}")
        self.path = path
        self.line_no = line_no


class IOFailure(FlatDBError, OSError):
    """An underlying filesystem operation failed."""
