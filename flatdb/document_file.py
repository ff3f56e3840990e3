"""
flatdb/document_file.py
DocumentFile: a schema-less collection stored as JSON lines.

Each non-blank line is one independent JSON object carrying an "id"
string field.  Blank lines are allowed and ignored on read.

Identifiers are allocated as max(existing numeric id) + 1, starting at
"1".  Update and delete read every line, edit a buffered copy and
rewrite the whole file, so each mutation costs O(collection size).

Corrupt lines (not JSON, or not an object) follow one policy for every
read:
  strict=False  skip the line, log a warning, note it in `diagnostics`.
                Update/delete write skipped lines back unchanged.
  strict=True   raise DecodeError.
Identifier allocation always skips corrupt lines.
"""

from __future__ import annotations
import dataclasses
import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

from flatdb.codec import dumps_compact
from flatdb.errors import DecodeError, InvalidInput, NotFound
from flatdb.fileio import append_lines, io_guard, open_read, remove_file, rewrite_lines

logger = logging.getLogger(__name__)

ID_FIELD = "id"

Record = dict[str, Any]
Mutation = Callable[[Record], "Record | None"]


def _to_object(record: Any) -> Record:
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    if isinstance(record, Mapping):
        return dict(record)
    raise InvalidInput(
        f"Record must be a JSON object, got {type(record).__name__}"
    )


def _numeric_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    return None


def _id_matches(obj: Record, identifier: str) -> bool:
    value = obj.get(ID_FIELD)
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return False
    return str(value) == identifier


class DocumentFile:
    """
    Handle on one JSON-lines collection.

    The file is created empty on construction if it does not exist yet.
    """

    def __init__(
        self,
        name: str,
        path: str | Path,
        atomic_writes: bool = True,
        strict: bool = False,
    ) -> None:
        self.name = name
        self.path = Path(path)
        self.atomic_writes = atomic_writes
        self.strict = strict
        self.diagnostics: list[tuple[int, str]] = []
        self._lock = threading.RLock()
        with io_guard("create collection", self.path):
            if not self.path.exists():
                self.path.touch()
                logger.debug("created collection %s at %s", name, self.path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def identifier_ceiling(self) -> int:
        """Largest numeric id in the collection, 0 if there is none."""
        ceiling = 0
        for _, line in self._lines(reset_diagnostics=False):
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except ValueError:
                continue
            if not isinstance(obj, dict):
                continue
            num = _numeric_id(obj.get(ID_FIELD))
            if num is not None and num > ceiling:
                ceiling = num
        return ceiling

    def insert(self, record: Any) -> str:
        """
        Store `record` with a freshly allocated id; return the id.

        Any "id" the record already carries is replaced.
        """
        obj = _to_object(record)
        with self._lock:
            new_id = str(self.identifier_ceiling() + 1)
            obj[ID_FIELD] = new_id
            try:
                line = dumps_compact(obj)
            except (TypeError, ValueError) as e:
                raise InvalidInput(f"Record is not JSON serialisable: {e}") from e
            append_lines(self.path, [line])
        logger.debug("inserted id=%s into %s", new_id, self.name)
        return new_id

    def scan(
        self, factory: Callable[..., Any] | None = None
    ) -> Iterator[Any]:
        """Yield every decodable record in file order."""
        for line_no, line in self._lines():
            if not line.strip():
                continue
            record = self._decode(line, line_no, factory)
            if record is not None:
                yield record

    def fetch_all(self, factory: Callable[..., Any] | None = None) -> list[Any]:
        """
        Return all records.

        If `factory` is given each record dict is passed as keyword
        arguments, e.g. fetch_all(User) for a dataclass User.
        """
        return list(self.scan(factory))

    def fetch_one(
        self, identifier: str | int, factory: Callable[..., Any] | None = None
    ) -> Any | None:
        """Return the first record whose id matches, or None."""
        wanted = str(identifier)
        for line_no, line in self._lines():
            if not line.strip():
                continue
            obj = self._decode(line, line_no)
            if obj is not None and _id_matches(obj, wanted):
                if factory is None:
                    return obj
                return self._decode(line, line_no, factory)
        return None

    def update(self, identifier: str | int, mutation: Mutation) -> bool:
        """
        Apply `mutation` to the first record whose id matches.

        `mutation` may edit the dict in place and return None, or return a
        replacement dict.  Other lines are written back byte-for-byte in
        their original order.  Returns False (file untouched) if nothing
        matched.
        """
        wanted = str(identifier)
        with self._lock:
            lines: list[str] = []
            updated = False
            for line_no, line in self._lines():
                if not updated and line.strip():
                    obj = self._decode(line, line_no)
                    if obj is not None and _id_matches(obj, wanted):
                        result = mutation(obj)
                        if result is not None:
                            obj = result
                        if not isinstance(obj, dict):
                            raise InvalidInput(
                                f"Mutation must produce a JSON object, got {type(obj).__name__}"
                            )
                        try:
                            line = dumps_compact(obj)
                        except (TypeError, ValueError) as e:
                            raise InvalidInput(f"Record is not JSON serialisable: {e}") from e
                        updated = True
                lines.append(line)
            if updated:
                rewrite_lines(self.path, lines, atomic=self.atomic_writes)
                logger.debug("updated id=%s in %s", wanted, self.name)
        return updated

    def delete(self, identifier: str | int) -> bool:
        """Drop every record whose id matches. Returns whether any was dropped."""
        wanted = str(identifier)
        with self._lock:
            kept: list[str] = []
            dropped = 0
            for line_no, line in self._lines():
                if line.strip():
                    obj = self._decode(line, line_no)
                    if obj is not None and _id_matches(obj, wanted):
                        dropped += 1
                        continue
                kept.append(line)
            if dropped:
                rewrite_lines(self.path, kept, atomic=self.atomic_writes)
                logger.debug("deleted %d record(s) with id=%s from %s", dropped, wanted, self.name)
        return dropped > 0

    def count(self) -> int:
        return sum(1 for _ in self.scan())

    def drop(self) -> bool:
        """Remove the backing file. Returns whether it existed."""
        with self._lock:
            return remove_file(self.path)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _lines(self, reset_diagnostics: bool = True) -> Iterator[tuple[int, str]]:
        """(1-based line number, line without terminator) for the whole file.

        Starting a decoding pass resets `diagnostics`, so it always describes
        the most recent read.  Identifier allocation reads with
        reset_diagnostics=False and leaves it alone.
        """
        if reset_diagnostics:
            self.diagnostics = []
        with io_guard("open collection", self.path):
            try:
                f = open_read(self.path)
            except FileNotFoundError:
                raise NotFound(f"Collection '{self.name}' not found") from None
        with f:
            with io_guard("read collection", self.path):
                for line_no, raw in enumerate(f, start=1):
                    yield line_no, raw[:-1] if raw.endswith("\n") else raw

    def _decode(
        self, line: str, line_no: int, factory: Callable[..., Any] | None = None
    ) -> Any | None:
        """Parse one line; on failure raise or skip according to `strict`."""
        try:
            obj = json.loads(line)
            if not isinstance(obj, dict):
                raise ValueError(f"expected an object, got {type(obj).__name__}")
            if factory is not None:
                return factory(**obj)
            return obj
        except (ValueError, TypeError) as e:
            if self.strict:
                raise DecodeError(f"Cannot decode record: {e}", path=self.path, line_no=line_no) from e
            self.diagnostics.append((line_no, str(e)))
            logger.warning("skipping corrupt line %d in %s: %s", line_no, self.path, e)
            return None

    def __repr__(self) -> str:
        return f"DocumentFile(name={self.name!r}, path={self.path})"
