"""
flatdb/fileio.py
Whole-file primitives shared by the table and document stores.

All text I/O is UTF-8 with newline="\\n": lines end only at "\\n" and
nothing is translated, so a "\\r" inside a value survives a round trip.

Rewrites come in two flavours:
  atomic=True   write <file>.tmp, fsync, os.replace() over the target.
                A reader sees either the old or the new file, never half.
  atomic=False  truncate the target and write in place.  A crash mid-way
                can leave the collection empty.
"""

from __future__ import annotations
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, TextIO

from flatdb.errors import IOFailure

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
NEWLINE = "\n"
TMP_SUFFIX = ".tmp"


@contextmanager
def io_guard(action: str, path: Path) -> Iterator[None]:
    """Re-raise OSError as IOFailure with the action and path attached."""
    try:
        yield
    except IOFailure:
        raise
    except OSError as e:
        raise IOFailure(f"Failed to {action} {path}: {e.strerror or e}") from e


def open_read(path: Path) -> TextIO:
    return open(path, "r", encoding=ENCODING, newline=NEWLINE)


def create_exclusive(path: Path, text: str = "") -> None:
    """Create `path` with `text`; raise FileExistsError if it is already there."""
    with open(path, "x", encoding=ENCODING, newline=NEWLINE) as f:
        f.write(text)


def append_lines(path: Path, lines: Iterable[str]) -> None:
    """Append each line plus a terminator in a single write."""
    payload = "".join(line + NEWLINE for line in lines)
    with io_guard("append to", path):
        with open(path, "a", encoding=ENCODING, newline=NEWLINE) as f:
            f.write(payload)


def rewrite_lines(path: Path, lines: Iterable[str], atomic: bool = True) -> None:
    """Replace the whole content of `path` with `lines`."""
    payload = "".join(line + NEWLINE for line in lines)
    if not atomic:
        with io_guard("rewrite", path):
            with open(path, "w", encoding=ENCODING, newline=NEWLINE) as f:
                f.write(payload)
        logger.debug("rewrote %s in place", path)
        return

    tmp = path.with_name(path.name + TMP_SUFFIX)
    with io_guard("rewrite", path):
        try:
            with open(tmp, "w", encoding=ENCODING, newline=NEWLINE) as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError:
            if tmp.exists():
                tmp.unlink()
            raise
    logger.debug("rewrote %s via %s", path, tmp.name)


def remove_file(path: Path) -> bool:
    """Delete `path`. Returns False if it was not there."""
    with io_guard("remove", path):
        try:
            path.unlink()
        except FileNotFoundError:
            return False
    return True
