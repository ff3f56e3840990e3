"""
flatdb/db.py
FlatDB: top-level store facade.

  FlatDB("./data")          tables and document collections under ./data
  FlatDB(config=cfg)        explicit StoreConfig
  FlatDB()                  StoreConfig.from_env()

Table handles are opened lazily on first access and cached for the life
of the FlatDB object; document collections likewise.  close() (or leaving
a `with` block) forgets every cached handle.
"""

from __future__ import annotations
import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence

from flatdb.codec import Row
from flatdb.collection import Collection
from flatdb.config import StoreConfig
from flatdb.document_file import DocumentFile, Mutation
from flatdb.errors import InvalidInput
from flatdb.fileio import io_guard, remove_file
from flatdb.schema import Schema
from flatdb.table_file import TableFile

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]*")


def _check_name(name: str) -> str:
    if not isinstance(name, str) or not _NAME_RE.fullmatch(name):
        raise InvalidInput(f"Invalid collection name: {name!r}")
    return name


class FlatDB:
    """
    Store facade exposing tables and document collections by name.

    Args:
        data_dir: directory for the collection files (created if missing).
        config:   full StoreConfig; overrides data_dir when both are given.
    """

    def __init__(
        self,
        data_dir: str | Path | None = None,
        config: StoreConfig | None = None,
    ) -> None:
        if config is None:
            config = StoreConfig.from_env(data_dir)
        self.config = config
        with io_guard("create data directory", config.data_dir):
            config.data_dir.mkdir(parents=True, exist_ok=True)
        self._tables: dict[str, TableFile] = {}
        self._documents: dict[str, DocumentFile] = {}
        self._lock = threading.RLock()

    @property
    def data_dir(self) -> Path:
        return self.config.data_dir

    # ------------------------------------------------------------------
    # Tables: DDL
    # ------------------------------------------------------------------

    def create_table(self, name: str, columns: Sequence[str] | Schema) -> TableFile:
        """
        Create a new table and return its handle.
        Raises AlreadyExists if a table with the same name exists on disk.
        """
        _check_name(name)
        schema = columns if isinstance(columns, Schema) else Schema(columns)
        with self._lock:
            table = TableFile.create(name, self.config.table_path(name), schema)
            self._tables[name] = table
        logger.info("created table %s", name)
        return table

    def get_table(self, name: str) -> TableFile:
        """Return the cached handle, opening it first. Raises NotFound."""
        _check_name(name)
        with self._lock:
            table = self._tables.get(name)
            if table is None:
                table = TableFile.open(name, self.config.table_path(name))
                self._tables[name] = table
            return table

    def drop_table(self, name: str) -> bool:
        """
        Drop a table.
        Returns True if the table existed and was dropped, False otherwise.
        """
        _check_name(name)
        with self._lock:
            table = self._tables.pop(name, None)
            if table is not None:
                with table._lock:
                    dropped = TableFile.drop(table.path)
            else:
                dropped = TableFile.drop(self.config.table_path(name))
        if dropped:
            logger.info("dropped table %s", name)
        return dropped

    def list_tables(self) -> list[str]:
        """Return a sorted list of the tables on disk."""
        return self._list(self.config.table_suffix)

    def list_opened_tables(self) -> list[str]:
        return sorted(self._tables)

    # ------------------------------------------------------------------
    # Tables: rows and interchange
    # ------------------------------------------------------------------

    def insert(self, name: str, values: Row | Sequence[str]) -> None:
        self.get_table(name).insert(values)

    def scan(self, name: str) -> Iterator[Row]:
        return self.get_table(name).scan()

    def select_all(self, name: str) -> list[Row]:
        return self.get_table(name).select_all()

    def export_typed(self, name: str) -> list[dict[str, Any]]:
        return self.get_table(name).export_typed()

    def export_json(self, name: str, indent: int | None = 2) -> str:
        """Serialise a table as a JSON array of objects."""
        return json.dumps(self.export_typed(name), ensure_ascii=False, indent=indent)

    def import_typed(self, name: str, payload: Any) -> int:
        return self.get_table(name).import_typed(payload)

    def import_json(self, name: str, text: str) -> int:
        """Parse `text` as a JSON array of objects and insert one row per object."""
        try:
            payload = json.loads(text)
        except ValueError as e:
            raise InvalidInput(f"Malformed JSON: {e}") from e
        return self.import_typed(name, payload)

    def schema_json(self) -> dict[str, list[str]]:
        """Map every table on disk to its column list."""
        return {name: list(self.get_table(name).schema.columns) for name in self.list_tables()}

    # ------------------------------------------------------------------
    # Document collections
    # ------------------------------------------------------------------

    def collection(self, name: str) -> DocumentFile:
        """Return the document collection, creating an empty file on first use."""
        _check_name(name)
        with self._lock:
            docs = self._documents.get(name)
            if docs is None:
                docs = DocumentFile(
                    name,
                    self.config.document_path(name),
                    atomic_writes=self.config.atomic_writes,
                    strict=self.config.strict_reads,
                )
                self._documents[name] = docs
            return docs

    def drop_collection(self, name: str) -> bool:
        _check_name(name)
        with self._lock:
            docs = self._documents.pop(name, None)
            if docs is not None:
                dropped = docs.drop()
            else:
                dropped = remove_file(self.config.document_path(name))
        if dropped:
            logger.info("dropped collection %s", name)
        return dropped

    def list_collections(self) -> list[str]:
        return self._list(self.config.document_suffix)

    def insert_document(self, name: str, record: Any) -> str:
        return self.collection(name).insert(record)

    def fetch_all(self, name: str, factory: Callable[..., Any] | None = None) -> list[Any]:
        return self.collection(name).fetch_all(factory)

    def fetch_one(
        self, name: str, identifier: str | int, factory: Callable[..., Any] | None = None
    ) -> Any | None:
        return self.collection(name).fetch_one(identifier, factory)

    def update(self, name: str, identifier: str | int, mutation: Mutation) -> bool:
        return self.collection(name).update(identifier, mutation)

    def delete(self, name: str, identifier: str | int) -> bool:
        return self.collection(name).delete(identifier)

    # ------------------------------------------------------------------
    # Either backend
    # ------------------------------------------------------------------

    def get(self, name: str, kind: str = "table") -> Collection:
        """Return a table (kind="table") or document collection (kind="document")."""
        if kind == "table":
            return self.get_table(name)
        if kind == "document":
            return self.collection(name)
        raise InvalidInput(f"Unknown collection kind: {kind!r}")

    # ------------------------------------------------------------------

    def close(self) -> None:
        """Forget every cached handle."""
        with self._lock:
            self._tables.clear()
            self._documents.clear()

    def _list(self, suffix: str) -> list[str]:
        with io_guard("list", self.data_dir):
            return sorted(
                p.name[: -len(suffix)]
                for p in self.data_dir.iterdir()
                if p.is_file() and p.name.endswith(suffix)
            )

    def __enter__(self) -> "FlatDB":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def __repr__(self) -> str:
        tables = ", ".join(self.list_tables()) or "(none)"
        docs = ", ".join(self.list_collections()) or "(none)"
        return f"FlatDB(dir={self.data_dir}, tables=[{tables}], collections=[{docs}])"
