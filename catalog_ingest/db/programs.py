"""CRUD operations for ``degree_programs`` and ``program_footnotes``."""

from __future__ import annotations

import json
import sqlite3
from time import time
from typing import Any, Iterable, Optional

from catalog_ingest.db.models import DegreeProgram, FootnoteRecord


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_program(row: sqlite3.Row) -> DegreeProgram:
    return DegreeProgram(
        id=row["id"],
        name=row["name"],
        base_program_name=row["base_program_name"],
        concentration_name=row["concentration_name"],
        degree_type=row["degree_type"],
        total_credits=row["total_credits"],
        requirements=json.loads(row["requirements"] or "{}"),
        gen_ed_requirements=json.loads(row["gen_ed_requirements"] or "{}"),
        requires_concentration=bool(row["requires_concentration"]),
        scraping_metadata=json.loads(row["scraping_metadata"] or "{}"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_footnote(row: sqlite3.Row) -> FootnoteRecord:
    return FootnoteRecord(
        degree_program_id=row["degree_program_id"],
        footnote_number=row["footnote_number"],
        footnote_content=row["footnote_content"],
        rule_type=row["rule_type"],
        course_codes_mentioned=json.loads(row["course_codes_mentioned"] or "[]"),
        parsed_data=json.loads(row["parsed_data"] or "{}"),
    )


# ---------------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------------

def get_program(conn: sqlite3.Connection, program_id: int) -> Optional[DegreeProgram]:
    row = conn.execute(
        "SELECT * FROM degree_programs WHERE id = ?", (program_id,)
    ).fetchone()
    return _row_to_program(row) if row else None


def find_by_name(conn: sqlite3.Connection, name: str) -> Optional[DegreeProgram]:
    row = conn.execute(
        "SELECT * FROM degree_programs WHERE name = ? ORDER BY id LIMIT 1", (name,)
    ).fetchone()
    return _row_to_program(row) if row else None


def find_by_concentration(
    conn: sqlite3.Connection, base_program_name: str, concentration_name: str
) -> Optional[DegreeProgram]:
    row = conn.execute(
        """
        SELECT * FROM degree_programs
        WHERE base_program_name = ? AND concentration_name = ?
        ORDER BY id LIMIT 1
        """,
        (base_program_name, concentration_name),
    ).fetchone()
    return _row_to_program(row) if row else None


def list_programs(conn: sqlite3.Connection) -> list[DegreeProgram]:
    rows = conn.execute("SELECT * FROM degree_programs ORDER BY name").fetchall()
    return [_row_to_program(r) for r in rows]


def create_program(
    conn: sqlite3.Connection,
    name: str,
    base_program_name: Optional[str],
    concentration_name: Optional[str],
    degree_type: str,
    scraping_metadata: Optional[dict[str, Any]] = None,
) -> DegreeProgram:
    """Insert a new degree program with empty requirements and return it."""
    now = int(time())
    with conn:
        cursor = conn.execute(
            """
            INSERT INTO degree_programs (
                name, base_program_name, concentration_name, degree_type,
                requires_concentration, scraping_metadata, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                base_program_name,
                concentration_name,
                degree_type,
                int(bool(concentration_name)),
                json.dumps(scraping_metadata or {}),
                now,
                now,
            ),
        )
    return get_program(conn, cursor.lastrowid)  # type: ignore[arg-type,return-value]


def save_requirements(
    conn: sqlite3.Connection,
    program_id: int,
    requirements: dict[str, Any],
    gen_ed_requirements: dict[str, Any],
    scraping_metadata: dict[str, Any],
    footnotes: Iterable[FootnoteRecord] = (),
) -> DegreeProgram:
    """Overwrite a program's requirement documents and replace its footnotes.

    Runs as one transaction: the old footnotes are deleted and the new ones
    inserted together with the requirements update, or nothing changes.

    Raises:
        LookupError: If ``program_id`` does not exist.
    """
    with conn:
        cursor = conn.execute(
            """
            UPDATE degree_programs
            SET requirements = ?, gen_ed_requirements = ?, scraping_metadata = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                json.dumps(requirements),
                json.dumps(gen_ed_requirements),
                json.dumps(scraping_metadata),
                int(time()),
                program_id,
            ),
        )
        if cursor.rowcount == 0:
            raise LookupError(f"Degree program not found: {program_id!r}")

        conn.execute(
            "DELETE FROM program_footnotes WHERE degree_program_id = ?", (program_id,)
        )
        conn.executemany(
            """
            INSERT INTO program_footnotes (
                degree_program_id, footnote_number, footnote_content,
                course_codes_mentioned, rule_type, parsed_data
            )
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    program_id,
                    f.footnote_number,
                    f.footnote_content,
                    json.dumps(f.course_codes_mentioned),
                    f.rule_type,
                    json.dumps(f.parsed_data),
                )
                for f in footnotes
            ],
        )
    return get_program(conn, program_id)  # type: ignore[return-value]


def list_footnotes(conn: sqlite3.Connection, program_id: int) -> list[FootnoteRecord]:
    rows = conn.execute(
        """
        SELECT * FROM program_footnotes
        WHERE degree_program_id = ?
        ORDER BY footnote_number
        """,
        (program_id,),
    ).fetchall()
    return [_row_to_footnote(r) for r in rows]
