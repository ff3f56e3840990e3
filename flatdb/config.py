"""
flatdb/config.py
StoreConfig: where collections live and how they are rewritten.

Environment overrides (read by StoreConfig.from_env):
  FLATDB_DATA_DIR        directory holding the collection files
  FLATDB_ATOMIC_WRITES   1/0: temp-file + rename rewrites (default 1)
  FLATDB_STRICT_READS    1/0: corrupt document lines raise (default 0)
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "flatdb_data"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class StoreConfig:
    data_dir: Path = Path(DEFAULT_DATA_DIR)
    atomic_writes: bool = True
    strict_reads: bool = False
    table_suffix: str = ".csv"
    document_suffix: str = ".jsonl"

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir)

    def table_path(self, name: str) -> Path:
        return self.data_dir / f"{name}{self.table_suffix}"

    def document_path(self, name: str) -> Path:
        return self.data_dir / f"{name}{self.document_suffix}"

    @classmethod
    def from_env(cls, data_dir: str | Path | None = None) -> "StoreConfig":
        """Build a config from FLATDB_* variables; `data_dir` wins over the env."""
        def _bool(name: str, default: bool) -> bool:
            raw = os.environ.get(name)
            if raw is None:
                return default
            val = raw.strip().lower()
            if val in _TRUE:
                return True
            if val in _FALSE:
                return False
            logger.warning("invalid boolean %s=%r, using default %s", name, raw, default)
            return default

        if data_dir is None:
            data_dir = os.environ.get("FLATDB_DATA_DIR", DEFAULT_DATA_DIR)
        return cls(
            data_dir=Path(data_dir),
            atomic_writes=_bool("FLATDB_ATOMIC_WRITES", True),
            strict_reads=_bool("FLATDB_STRICT_READS", False),
        )
