"""
flatdb/codec.py
Row codec: two encodings over one value model.

Delimited-line encoding (table rows):
  A value is wrapped in double quotes, with inner quotes doubled, iff it
  contains the delimiter, a quote or a newline.  Otherwise it is written
  as-is.  Decoding is one left-to-right scan with an "inside quotes" flag.

Typed value encoding (table <-> JSON bridge):
  text -> value tries NULL, int, float, true/false, [..] array, {..} object,
  then falls back to the string itself.  value -> text is the inverse.
  The bridge is ambiguous by construction: the *string* "NULL", "true" or
  "42" comes back as null / bool / number.
"""

from __future__ import annotations
import json
import re
from typing import Any, Iterable, Iterator, Mapping, Sequence

from flatdb.errors import ArityMismatch, InvalidInput
from flatdb.schema import DELIMITER, QUOTE, Schema

NULL_TEXT = "NULL"

_NEEDS_QUOTING = (DELIMITER, QUOTE, "\n", "\r")
_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class Row:
    """One tabular record: an ordered list of text values."""

    __slots__ = ("values",)

    def __init__(self, values: Iterable[str]) -> None:
        self.values: list[str] = list(values)

    def get(self, index: int) -> str | None:
        if 0 <= index < len(self.values):
            return self.values[index]
        return None

    def get_by_name(self, schema: Schema, name: str) -> str | None:
        idx = schema.column_index(name)
        return None if idx is None else self.get(idx)

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Row):
            return self.values == other.values
        if isinstance(other, list):
            return self.values == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"Row({self.values!r})"


# ──────────────────────────────────────────────────────────────────────
# Delimited-line encoding
# ──────────────────────────────────────────────────────────────────────

def _quote(value: str) -> str:
    if any(ch in value for ch in _NEEDS_QUOTING):
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value


def encode_row(row: Row | Sequence[str]) -> str:
    """Encode a record as one delimited line (without the line terminator)."""
    return DELIMITER.join(_quote(v) for v in row)


def decode_row(line: str) -> Row:
    """
    Decode one delimited line.

    Inside quotes a doubled quote is a literal quote and a lone quote
    closes the field.  The final field is always emitted, so a trailing
    delimiter yields a trailing empty value.
    """
    values: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        c = line[i]
        if in_quotes:
            if c == QUOTE:
                if i + 1 < n and line[i + 1] == QUOTE:
                    current.append(QUOTE)
                    i += 2
                    continue
                in_quotes = False
            else:
                current.append(c)
        elif c == DELIMITER:
            values.append("".join(current))
            current = []
        elif c == QUOTE:
            in_quotes = True
        else:
            current.append(c)
        i += 1
    values.append("".join(current))
    return Row(values)


def ends_inside_quotes(text: str) -> bool:
    """
    True if `text` stops in the middle of a quoted field.

    Doubled quotes contribute an even count, so an odd number of quote
    characters means a quoted field is still open.
    """
    return text.count(QUOTE) % 2 == 1


def iter_records(lines: Iterable[str]) -> Iterator[tuple[int, str]]:
    """
    Join physical lines into logical records.

    A value with an embedded newline spans several physical lines; they
    are glued back together while a quoted field is open.  Yields
    (first physical line number, record text) with the terminator, "\n"
    or "\r\n", removed.
    """
    pending: list[str] = []
    start = 0
    for line_no, raw in enumerate(lines):
        if not pending:
            start = line_no
        pending.append(raw)
        text = "".join(pending)
        if ends_inside_quotes(text):
            continue
        pending = []
        yield start, _strip_terminator(text)
    if pending:
        # unterminated quote at EOF: hand back what we have
        yield start, _strip_terminator("".join(pending))


def _strip_terminator(text: str) -> str:
    if text.endswith("\n"):
        text = text[:-1]
    # a balanced record cannot end inside quotes, so this \r is the CRLF half
    if text.endswith("\r"):
        text = text[:-1]
    return text


def validate(row: Row | Sequence[str], schema: Schema) -> None:
    """Raise ArityMismatch unless len(row) == schema arity."""
    if len(row) != schema.column_count:
        raise ArityMismatch(len(row), schema.column_count)


# ──────────────────────────────────────────────────────────────────────
# Typed value encoding
# ──────────────────────────────────────────────────────────────────────

def text_to_value(text: str) -> Any:
    if text == NULL_TEXT:
        return None
    if _INT_RE.fullmatch(text):
        return int(text)
    if _FLOAT_RE.fullmatch(text):
        return float(text)
    if text == "true":
        return True
    if text == "false":
        return False
    if text.startswith("[") and text.endswith("]"):
        parsed = _try_json(text)
        if isinstance(parsed, list):
            return parsed
    elif text.startswith("{") and text.endswith("}"):
        parsed = _try_json(text)
        if isinstance(parsed, dict):
            return parsed
    return text


def value_to_text(value: Any) -> str:
    if value is None:
        return NULL_TEXT
    # bool before int: True is an int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        # non-finite floats come back as the strings "nan" / "inf"
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, dict)):
        try:
            return dumps_compact(value)
        except ValueError as e:
            raise InvalidInput(f"Value is not representable as JSON: {e}") from e
    raise InvalidInput(f"Unsupported value type: {type(value).__name__}")


def row_to_object(row: Row | Sequence[str], schema: Schema) -> dict[str, Any]:
    """Map a row to {column: typed value}. Missing trailing values are omitted."""
    values = list(row)
    return {
        col: text_to_value(values[i])
        for i, col in enumerate(schema.columns)
        if i < len(values)
    }


def row_from_object(obj: Any, schema: Schema) -> Row:
    """
    Build a row from a typed object.  Columns absent from `obj` get an
    empty string; keys that are not columns are ignored.
    """
    if not isinstance(obj, Mapping):
        raise InvalidInput(f"Expected a JSON object, got {type(obj).__name__}")
    values = [""] * schema.column_count
    for name, value in obj.items():
        idx = schema.column_index(name)
        if idx is not None:
            values[idx] = value_to_text(value)
    return Row(values)


def dumps_compact(value: Any) -> str:
    """Compact JSON text; NaN and infinities raise ValueError."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def _try_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None
