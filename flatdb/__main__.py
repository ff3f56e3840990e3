"""
flatdb/__main__.py
Interactive shell for flatdb.

Usage:
    python -m flatdb                          # ./flatdb_data or $FLATDB_DATA_DIR
    python -m flatdb --data-dir ./mydb --log-level DEBUG

Meta-commands:
    .help          show help
    .tables        list tables
    .collections   list document collections
    .quit          exit (also: exit, quit, .exit)
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path

from flatdb.codec import decode_row
from flatdb.db import FlatDB
from flatdb.errors import FlatDBError, InvalidInput

HELP = """
Meta-commands:
  .tables        List all tables
  .collections   List all document collections
  .help          Show this help
  .quit          Exit  (also: exit, quit, .exit)

Tables:
  create users id,firstname,lastname,email
  insert users 1,Ahmet,Sekmen,sekmenahmet04@gmail.com
  scan users
  export users [out.json]
  import users in.json
  drop users

Documents:
  dinsert notes {"title": "hello"}
  dall notes
  dget notes 1
  dupdate notes 1 {"title": "bye"}
  ddelete notes 1
"""


# ── ASCII table formatter ─────────────────────────────────────────────

def _cell(value: object) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _fmt_table(rows: list[dict]) -> str:
    if not rows:
        return "(0 rows)"
    cols: list[str] = []
    for row in rows:
        for c in row:
            if c not in cols:
                cols.append(c)
    widths = {c: len(c) for c in cols}
    str_rows = []
    for row in rows:
        str_row = {c: _cell(row[c]) if c in row else "" for c in cols}
        for c in cols:
            widths[c] = max(widths[c], len(str_row[c]))
        str_rows.append(str_row)

    sep = "+" + "+".join("-" * (widths[c] + 2) for c in cols) + "+"
    header = "|" + "|".join(f" {c:<{widths[c]}} " for c in cols) + "|"
    lines = [sep, header, sep]
    for str_row in str_rows:
        lines.append("|" + "|".join(f" {str_row[c]:<{widths[c]}} " for c in cols) + "|")
    lines.append(sep)
    lines.append(f"({len(rows)} row{'s' if len(rows) != 1 else ''})")
    return "\n".join(lines)


# ── Statements ───────────────────────────────────────────────────────

def _split(line: str, n: int) -> list[str]:
    """Split off up to n words; the remainder is one final arg."""
    parts = line.strip().split(None, n)
    return parts + [""] * (n + 1 - len(parts))


def _json_arg(text: str) -> object:
    try:
        return json.loads(text)
    except ValueError as e:
        raise InvalidInput(f"Malformed JSON: {e}") from e


def execute(db: FlatDB, line: str) -> str:
    """Run one statement and return the text to print."""
    cmd, name, rest = _split(line, 2)
    cmd = cmd.lower()
    if not name:
        raise InvalidInput(f"Usage: {cmd} <name> ...  (see .help)")

    if cmd == "create":
        db.create_table(name, rest.split(","))
        return "OK"
    if cmd == "drop":
        return "OK" if db.drop_table(name) else f"No such table: {name}"
    if cmd == "insert":
        db.insert(name, decode_row(rest).values)
        return "OK (1 row inserted)"
    if cmd == "scan":
        table = db.get_table(name)
        cols = table.schema.columns
        return _fmt_table([dict(zip(cols, row)) for row in table.scan()])
    if cmd == "export":
        text = db.export_json(name)
        if rest:
            Path(rest).write_text(text + "\n", encoding="utf-8")
            return f"OK (written to {rest})"
        return text
    if cmd == "import":
        if not rest:
            raise InvalidInput("Usage: import <table> <file>")
        count = db.import_json(name, Path(rest).read_text(encoding="utf-8"))
        return f"OK ({count} row{'s' if count != 1 else ''} imported)"
    if cmd == "dinsert":
        new_id = db.insert_document(name, _json_arg(rest))
        return f"OK (id {new_id})"
    if cmd == "dall":
        return _fmt_table(db.fetch_all(name))
    if cmd == "dget":
        record = db.fetch_one(name, rest.strip())
        return _fmt_table([record] if record is not None else [])
    if cmd == "dupdate":
        ident, patch_text = _split(rest, 1)
        patch = _json_arg(patch_text)
        if not isinstance(patch, dict):
            raise InvalidInput("dupdate expects a JSON object")
        found = db.update(name, ident, lambda rec: rec.update(patch))
        return "OK (1 record updated)" if found else f"No record with id {ident}"
    if cmd == "ddelete":
        found = db.delete(name, rest.strip())
        return "OK" if found else f"No record with id {rest.strip()}"
    raise InvalidInput(f"Unknown command: {cmd}")


# ── REPL ─────────────────────────────────────────────────────────────

def run_repl(db: FlatDB) -> None:
    print(f"flatdb shell  (dir={db.data_dir})  Type .help for help, exit or .quit to exit.")
    print()

    while True:
        try:
            line = input("flatdb> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        stripped = line.strip()
        if not stripped:
            continue
        if stripped.lower() in ("exit", "quit"):
            print("Bye!")
            break
        if stripped.startswith("."):
            if not _handle_meta(stripped, db):
                break
            continue

        try:
            print(execute(db, stripped))
        except (FlatDBError, OSError) as e:
            print(f"Error: {e}")


def _handle_meta(cmd: str, db: FlatDB) -> bool:
    """Handle a dot-command. Returns False when the shell should exit."""
    cmd = cmd.lower().split()[0]
    if cmd in (".quit", ".exit"):
        print("Bye!")
        return False
    if cmd == ".tables":
        _print_names(db.list_tables(), "(no tables)")
    elif cmd == ".collections":
        _print_names(db.list_collections(), "(no collections)")
    elif cmd == ".help":
        print(HELP)
    else:
        print(f"Unknown meta-command: {cmd}")
    return True


def _print_names(names: list[str], empty: str) -> None:
    if names:
        for n in names:
            print(f"  {n}")
    else:
        print(f"  {empty}")


# ── Entry point ───────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="python -m flatdb", description="flatdb interactive shell")
    parser.add_argument("--data-dir", metavar="PATH", default=None,
                        help="Directory holding collection files (default: $FLATDB_DATA_DIR or ./flatdb_data)")
    parser.add_argument("--log-level", metavar="LEVEL",
                        default=os.environ.get("FLATDB_LOG_LEVEL", "WARNING"),
                        help="Logging level (default: $FLATDB_LOG_LEVEL or WARNING)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    with FlatDB(args.data_dir) as db:
        run_repl(db)


if __name__ == "__main__":
    main()
