"""CRUD operations for the ``courses`` and ``course_mapping_cache`` tables."""

from __future__ import annotations

import sqlite3
from time import time
from typing import Iterable, Optional

from catalog_ingest.db.models import Course


def _row_to_course(row: sqlite3.Row) -> Course:
    return Course(
        id=row["id"],
        code=row["code"],
        title=row["title"],
        credits=row["credits"],
    )


def upsert_course(
    conn: sqlite3.Connection,
    code: str,
    title: Optional[str] = None,
    credits: Optional[float] = None,
) -> Course:
    """Insert a course, or refresh title/credits if the code already exists."""
    now = int(time())
    with conn:
        conn.execute(
            """
            INSERT INTO courses (code, title, credits, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(code) DO UPDATE SET
                title = excluded.title,
                credits = excluded.credits,
                updated_at = excluded.updated_at
            """,
            (code, title, credits, now, now),
        )
    return get_course(conn, code)  # type: ignore[return-value]


def import_courses(
    conn: sqlite3.Connection,
    rows: Iterable[tuple[str, Optional[str], Optional[float]]],
) -> int:
    """Bulk upsert ``(code, title, credits)`` rows in one transaction."""
    now = int(time())
    count = 0
    with conn:
        for code, title, credits in rows:
            conn.execute(
                """
                INSERT INTO courses (code, title, credits, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(code) DO UPDATE SET
                    title = excluded.title,
                    credits = excluded.credits,
                    updated_at = excluded.updated_at
                """,
                (code, title, credits, now, now),
            )
            count += 1
    return count


def get_course(conn: sqlite3.Connection, code: str) -> Optional[Course]:
    row = conn.execute("SELECT * FROM courses WHERE code = ?", (code,)).fetchone()
    return _row_to_course(row) if row else None


def count_courses(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0]


def add_mapping_alias(
    conn: sqlite3.Connection,
    course_code: str,
    course_id: int,
    title: Optional[str] = None,
    credits: Optional[float] = None,
) -> None:
    """Map an extra code (a cross-listing, say) onto an existing course id."""
    with conn:
        conn.execute(
            """
            INSERT OR REPLACE INTO course_mapping_cache (course_code, course_id, title, credits)
            VALUES (?, ?, ?, ?)
            """,
            (course_code, course_id, title, credits),
        )
