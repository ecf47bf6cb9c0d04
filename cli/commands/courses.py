"""Course catalog commands: seed the table the mapper reconciles against."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Iterator, Optional

import typer

from catalog_ingest.db import get_connection, init_db
from catalog_ingest.db.courses import count_courses, import_courses
from catalog_ingest.scraper.course_codes import parse_course_code

courses_app = typer.Typer(help="Manage the course catalog.", no_args_is_help=True)


def _credits(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    return float(value)


def _read_records(path: Path) -> Iterator[dict[str, Any]]:
    if path.suffix.lower() == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError("JSON course file must contain a list of objects")
        yield from data
    else:
        with path.open(newline="", encoding="utf-8") as fh:
            yield from csv.DictReader(fh)


@courses_app.command("import")
def courses_import(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON or CSV file (code,title,credits)."),
) -> None:
    """Load courses into the database, updating existing codes."""
    rows: list[tuple[str, Optional[str], Optional[float]]] = []
    skipped = 0
    try:
        for record in _read_records(path):
            code = parse_course_code(str(record.get("code") or ""))
            if code is None:
                skipped += 1
                continue
            rows.append((code, record.get("title") or None, _credits(record.get("credits"))))
    except (ValueError, json.JSONDecodeError) as exc:
        typer.echo(f"[courses import] ERROR: {exc}", err=True)
        raise typer.Exit(1)

    conn = get_connection()
    try:
        init_db(conn)
        count = import_courses(conn, rows)
    finally:
        conn.close()

    typer.echo(f"[courses import] Imported {count} courses ({skipped} skipped)")


@courses_app.command("count")
def courses_count() -> None:
    """Show how many courses the catalog holds."""
    conn = get_connection()
    try:
        init_db(conn)
        count = count_courses(conn)
    finally:
        conn.close()
    typer.echo(f"[courses count] {count} courses")
