"""CRUD operations for ``scraping_sessions`` and ``scraping_results``."""

from __future__ import annotations

import json
import sqlite3
from time import time
from typing import Any, Optional

from catalog_ingest.db.models import ScrapingResultData, ScrapingSession


def _row_to_session(row: sqlite3.Row) -> ScrapingSession:
    return ScrapingSession(
        session_id=row["session_id"],
        total_programs=row["total_programs"],
        successful_programs=row["successful_programs"],
        failed_programs=row["failed_programs"],
        partial_programs=row["partial_programs"],
        session_metadata=json.loads(row["session_metadata"] or "{}"),
    )


def _row_to_result(row: sqlite3.Row) -> ScrapingResultData:
    error_details = row["error_details"]
    return ScrapingResultData(
        program_url=row["program_url"],
        program_name=row["program_name"],
        status=row["status"],
        concentration_name=row["concentration_name"],
        pattern_detected=row["pattern_detected"],
        navigation_path=json.loads(row["navigation_path"] or "[]"),
        courses_found=row["courses_found"],
        courses_mapped=row["courses_mapped"],
        unmapped_courses=json.loads(row["unmapped_courses"] or "[]"),
        processing_time_ms=row["processing_time_ms"],
        error_details=json.loads(error_details) if error_details else None,
    )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

def create_session(
    conn: sqlite3.Connection,
    session_id: str,
    total_programs: int,
    metadata: Optional[dict[str, Any]] = None,
) -> ScrapingSession:
    now = int(time())
    with conn:
        conn.execute(
            """
            INSERT INTO scraping_sessions (
                session_id, total_programs, session_metadata, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?)
            """,
            (session_id, total_programs, json.dumps(metadata or {}), now, now),
        )
    return get_session(conn, session_id)  # type: ignore[return-value]


def upsert_session(conn: sqlite3.Connection, session: ScrapingSession) -> ScrapingSession:
    """Write the session's counters, inserting the row if it does not exist."""
    now = int(time())
    with conn:
        conn.execute(
            """
            INSERT INTO scraping_sessions (
                session_id, total_programs, successful_programs, failed_programs,
                partial_programs, session_metadata, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(session_id) DO UPDATE SET
                total_programs = excluded.total_programs,
                successful_programs = excluded.successful_programs,
                failed_programs = excluded.failed_programs,
                partial_programs = excluded.partial_programs,
                session_metadata = excluded.session_metadata,
                updated_at = excluded.updated_at
            """,
            (
                session.session_id,
                session.total_programs,
                session.successful_programs,
                session.failed_programs,
                session.partial_programs,
                json.dumps(session.session_metadata),
                now,
                now,
            ),
        )
    return get_session(conn, session.session_id)  # type: ignore[return-value]


def get_session(conn: sqlite3.Connection, session_id: str) -> Optional[ScrapingSession]:
    row = conn.execute(
        "SELECT * FROM scraping_sessions WHERE session_id = ?", (session_id,)
    ).fetchone()
    return _row_to_session(row) if row else None


# ---------------------------------------------------------------------------
# Results (append-only)
# ---------------------------------------------------------------------------

def insert_result(conn: sqlite3.Connection, session_id: str, data: ScrapingResultData) -> int:
    with conn:
        cursor = conn.execute(
            """
            INSERT INTO scraping_results (
                session_id, program_url, program_name, concentration_name, status,
                pattern_detected, navigation_path, courses_found, courses_mapped,
                unmapped_courses, processing_time_ms, error_details, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session_id,
                data.program_url,
                data.program_name,
                data.concentration_name,
                data.status,
                data.pattern_detected,
                json.dumps(data.navigation_path),
                data.courses_found,
                data.courses_mapped,
                json.dumps(data.unmapped_courses),
                data.processing_time_ms,
                json.dumps(data.error_details, default=str) if data.error_details is not None else None,
                int(time()),
            ),
        )
    return cursor.lastrowid  # type: ignore[return-value]


def list_results(conn: sqlite3.Connection, session_id: str) -> list[ScrapingResultData]:
    rows = conn.execute(
        "SELECT * FROM scraping_results WHERE session_id = ? ORDER BY id",
        (session_id,),
    ).fetchall()
    return [_row_to_result(r) for r in rows]
