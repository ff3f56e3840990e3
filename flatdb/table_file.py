"""
flatdb/table_file.py
TableFile: a schema-typed collection stored as one delimited text file.

File layout:
  line 0      column names joined by "," (the schema header)
  line 1..N   one encoded row each (a row with an embedded newline
              spans several physical lines inside a quoted field)

Every line ends with "\\n".  Inserts append; scans re-read the file
from the start and never keep it open between calls.

Lifecycle:  absent -> create() -> open() -> drop() -> absent
"""

from __future__ import annotations
import logging
import threading
from pathlib import Path
from typing import Any, Iterator, Sequence

from flatdb import codec
from flatdb.codec import Row
from flatdb.errors import AlreadyExists, DecodeError, InvalidInput, NotFound
from flatdb.fileio import append_lines, create_exclusive, io_guard, open_read, remove_file
from flatdb.schema import Schema

logger = logging.getLogger(__name__)


class TableFile:
    """
    Handle on one table file with its schema cached in memory.

    Obtain one through TableFile.create() or TableFile.open(); the
    constructor does not touch the disk.
    """

    def __init__(self, name: str, path: str | Path, schema: Schema) -> None:
        self.name = name
        self.path = Path(path)
        self.schema = schema
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, name: str, path: str | Path, schema: Schema) -> "TableFile":
        """Write the header line. Raises AlreadyExists if the file is there."""
        path = Path(path)
        with io_guard("create table", path):
            try:
                create_exclusive(path, schema.serialize_header() + "\n")
            except FileExistsError:
                raise AlreadyExists(f"Table '{name}' already exists") from None
        logger.debug("created table %s at %s with columns %s", name, path, list(schema.columns))
        return cls(name, path, schema)

    @classmethod
    def open(cls, name: str, path: str | Path) -> "TableFile":
        """Read and parse the header line. Raises NotFound if there is no file."""
        path = Path(path)
        with io_guard("open table", path):
            try:
                with open_read(path) as f:
                    header = f.readline()
            except FileNotFoundError:
                raise NotFound(f"Table '{name}' not found") from None
        try:
            schema = Schema.parse_header(header)
        except InvalidInput as e:
            raise DecodeError(f"Bad header for table '{name}': {e}", path=path, line_no=1) from e
        logger.debug("opened table %s (%d columns)", name, schema.column_count)
        return cls(name, path, schema)

    @staticmethod
    def drop(path: str | Path) -> bool:
        """Remove the table file. Idempotent; returns whether a file was removed."""
        removed = remove_file(Path(path))
        if removed:
            logger.debug("dropped table file %s", path)
        return removed

    # ------------------------------------------------------------------
    # DML
    # ------------------------------------------------------------------

    def insert(self, record: Row | Sequence[str]) -> None:
        """
        Append one row.

        Raises ArityMismatch if the value count is not the schema's column
        count; nothing is written in that case.
        """
        values = list(record)
        codec.validate(values, self.schema)
        for v in values:
            if not isinstance(v, str):
                raise InvalidInput(f"Row values must be strings, got {type(v).__name__}")
        line = codec.encode_row(values)
        with self._lock:
            if not self.path.exists():
                raise NotFound(f"Table '{self.name}' not found")
            append_lines(self.path, [line])

    def scan(self) -> Iterator[Row]:
        """
        Yield every row in file order, skipping the header.

        Each call opens the file afresh, so the sequence is restartable.
        """
        with io_guard("open table", self.path):
            try:
                f = open_read(self.path)
            except FileNotFoundError:
                raise NotFound(f"Table '{self.name}' not found") from None
        with f:
            with io_guard("read table", self.path):
                for line_no, text in codec.iter_records(f):
                    if line_no == 0:
                        continue
                    yield codec.decode_row(text)

    def select_all(self) -> list[Row]:
        return list(self.scan())

    def count(self) -> int:
        return sum(1 for _ in self.scan())

    # ------------------------------------------------------------------
    # Typed interchange
    # ------------------------------------------------------------------

    def export_typed(self) -> list[dict[str, Any]]:
        """Full scan, each row mapped to {column: typed value}."""
        return [codec.row_to_object(row, self.schema) for row in self.scan()]

    def import_typed(self, payload: Any) -> int:
        """
        Insert one row per object in `payload`; return the count inserted.

        The payload must be a list (or tuple) of objects.  Every element is
        converted before the first insert, so a malformed element rejects
        the whole call with nothing written.  Inserts are still one append
        each: an I/O failure part-way leaves the earlier rows in place.
        """
        if not isinstance(payload, (list, tuple)):
            raise InvalidInput(f"Expected a JSON array, got {type(payload).__name__}")
        rows: list[Row] = []
        for pos, item in enumerate(payload):
            try:
                rows.append(codec.row_from_object(item, self.schema))
            except InvalidInput as e:
                raise InvalidInput(f"Error converting element {pos} to row: {e}") from e
        with self._lock:
            for row in rows:
                self.insert(row)
        logger.debug("imported %d rows into %s", len(rows), self.name)
        return len(rows)

    def __repr__(self) -> str:
        return f"TableFile(name={self.name!r}, columns={list(self.schema.columns)!r}, path={self.path})"

