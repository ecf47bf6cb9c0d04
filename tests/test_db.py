"""Database layer tests.

All tests use an in-memory SQLite database so they are:
- Fast (no disk I/O)
- Isolated (each fixture gets a fresh DB)
- Side-effect free (nothing written to the workspace)
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from catalog_ingest.db import courses, programs, sessions
from catalog_ingest.db.connection import get_connection
from catalog_ingest.db.migrations import MIGRATIONS, current_version, init_db
from catalog_ingest.db.models import FootnoteRecord, ScrapingResultData, ScrapingSession


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory connection with the schema initialised."""
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    yield connection
    connection.close()


# ---------------------------------------------------------------------------
# connection / init
# ---------------------------------------------------------------------------

class TestConnection:
    def test_foreign_keys_enabled(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("PRAGMA foreign_keys").fetchone()
        assert row[0] == 1

    def test_wal_mode(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("PRAGMA journal_mode").fetchone()
        # In-memory DBs always return 'memory', on-disk returns 'wal'
        assert row[0] in ("wal", "memory")

    def test_on_disk_parent_created(self, tmp_path) -> None:
        path = tmp_path / "nested" / "catalog.db"
        connection = get_connection(path)
        connection.close()
        assert path.parent.is_dir()


class TestInitDb:
    def test_tables_exist(self, conn: sqlite3.Connection) -> None:
        tables = {
            r[0]
            for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        }
        assert {
            "courses",
            "course_mapping_cache",
            "degree_programs",
            "program_footnotes",
            "scraping_sessions",
            "scraping_results",
            "schema_version",
        } <= tables

    def test_migrations_applied(self, conn: sqlite3.Connection) -> None:
        assert current_version(conn) == MIGRATIONS[-1][0]
        index = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'index' AND name = 'idx_scraping_results_status'"
        ).fetchone()
        assert index is not None

    def test_init_db_is_idempotent(self, conn: sqlite3.Connection) -> None:
        courses.upsert_course(conn, "CS 1301", "Intro", 3)
        init_db(conn)
        init_db(conn)
        assert courses.count_courses(conn) == 1
        assert conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0] == len(MIGRATIONS)


# ---------------------------------------------------------------------------
# courses
# ---------------------------------------------------------------------------

class TestCourses:
    def test_upsert_inserts_then_updates(self, conn: sqlite3.Connection) -> None:
        first = courses.upsert_course(conn, "CS 1301", "Intro", 3)
        second = courses.upsert_course(conn, "CS 1301", "Intro to Computing", 4)
        assert first.id == second.id
        assert second.title == "Intro to Computing"
        assert second.credits == 4
        assert courses.count_courses(conn) == 1

    def test_get_course_not_found(self, conn: sqlite3.Connection) -> None:
        assert courses.get_course(conn, "CS 9999") is None

    def test_import_courses(self, conn: sqlite3.Connection) -> None:
        count = courses.import_courses(
            conn,
            [("CS 1301", "Intro", 3), ("MATH 1551", "Calculus", 2), ("CS 1301", "Intro", 3)],
        )
        assert count == 3
        assert courses.count_courses(conn) == 2

    def test_mapping_alias_replaces(self, conn: sqlite3.Connection) -> None:
        courses.add_mapping_alias(conn, "CS 1371", 1, "Old", 3)
        courses.add_mapping_alias(conn, "CS 1371", 2, "New", 3)
        row = conn.execute(
            "SELECT course_id, title FROM course_mapping_cache WHERE course_code = 'CS 1371'"
        ).fetchone()
        assert (row["course_id"], row["title"]) == (2, "New")


# ---------------------------------------------------------------------------
# degree programs
# ---------------------------------------------------------------------------

class TestPrograms:
    def test_create_program_defaults(self, conn: sqlite3.Connection) -> None:
        program = programs.create_program(
            conn, "Computer Science - BS", "Computer Science - BS", None, "BS"
        )
        assert program.id > 0
        assert program.requirements == {}
        assert program.total_credits == 120
        assert program.requires_concentration is False

    def test_concentration_flag_and_lookup(self, conn: sqlite3.Connection) -> None:
        created = programs.create_program(
            conn, "Physics - BS - Optics", "Physics - BS", "Optics", "BS"
        )
        assert created.requires_concentration is True
        found = programs.find_by_concentration(conn, "Physics - BS", "Optics")
        assert found is not None and found.id == created.id
        assert programs.find_by_concentration(conn, "Physics - BS", "Nano") is None

    def test_find_by_name(self, conn: sqlite3.Connection) -> None:
        created = programs.create_program(conn, "Math - BS", "Math - BS", None, "BS")
        assert programs.find_by_name(conn, "Math - BS").id == created.id  # type: ignore[union-attr]
        assert programs.find_by_name(conn, "History - BA") is None

    def test_list_programs_sorted(self, conn: sqlite3.Connection) -> None:
        programs.create_program(conn, "Physics - BS", None, None, "BS")
        programs.create_program(conn, "Biology - BS", None, None, "BS")
        assert [p.name for p in programs.list_programs(conn)] == ["Biology - BS", "Physics - BS"]

    def test_save_requirements_roundtrip(self, conn: sqlite3.Connection) -> None:
        program = programs.create_program(conn, "CS - BS", "CS - BS", None, "BS")
        saved = programs.save_requirements(
            conn,
            program.id,
            requirements={"core": {"course_ids": [1, 2]}},
            gen_ed_requirements={"gen_ed_humanities": {"kind": "gen_ed"}},
            scraping_metadata={"quality_score": 88},
            footnotes=[
                FootnoteRecord(3, "Minimum grade of C", "grade_requirement", ["CS 1331"]),
            ],
        )
        assert saved.requirements == {"core": {"course_ids": [1, 2]}}
        assert saved.gen_ed_requirements["gen_ed_humanities"]["kind"] == "gen_ed"
        assert saved.scraping_metadata["quality_score"] == 88

        footnotes = programs.list_footnotes(conn, program.id)
        assert len(footnotes) == 1
        assert footnotes[0].course_codes_mentioned == ["CS 1331"]
        assert footnotes[0].degree_program_id == program.id

    def test_save_requirements_replaces_footnotes(self, conn: sqlite3.Connection) -> None:
        program = programs.create_program(conn, "CS - BS", "CS - BS", None, "BS")
        programs.save_requirements(
            conn, program.id, {}, {}, {},
            footnotes=[FootnoteRecord(1, "a", "general_rule"), FootnoteRecord(2, "b", "general_rule")],
        )
        programs.save_requirements(
            conn, program.id, {}, {}, {}, footnotes=[FootnoteRecord(5, "c", "credit_limit")]
        )
        assert [f.footnote_number for f in programs.list_footnotes(conn, program.id)] == [5]

    def test_save_requirements_unknown_program_raises(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(LookupError):
            programs.save_requirements(conn, 404, {}, {}, {})

    def test_failed_footnote_insert_rolls_back_requirements(self, conn: sqlite3.Connection) -> None:
        program = programs.create_program(conn, "CS - BS", "CS - BS", None, "BS")
        bad = FootnoteRecord(1, None, "general_rule")  # type: ignore[arg-type]
        with pytest.raises(sqlite3.IntegrityError):
            programs.save_requirements(conn, program.id, {"core": {}}, {}, {}, footnotes=[bad])
        assert programs.get_program(conn, program.id).requirements == {}  # type: ignore[union-attr]

    def test_footnotes_cascade_on_delete(self, conn: sqlite3.Connection) -> None:
        program = programs.create_program(conn, "CS - BS", "CS - BS", None, "BS")
        programs.save_requirements(
            conn, program.id, {}, {}, {}, footnotes=[FootnoteRecord(1, "a", "general_rule")]
        )
        with conn:
            conn.execute("DELETE FROM degree_programs WHERE id = ?", (program.id,))
        assert programs.list_footnotes(conn, program.id) == []


# ---------------------------------------------------------------------------
# sessions / results
# ---------------------------------------------------------------------------

class TestSessions:
    def test_create_and_get(self, conn: sqlite3.Connection) -> None:
        session = sessions.create_session(conn, "s1", 3, {"scraper_version": "1.0"})
        assert session.total_programs == 3
        assert session.successful_programs == 0
        assert session.session_metadata == {"scraper_version": "1.0"}
        assert sessions.get_session(conn, "missing") is None

    def test_duplicate_session_rejected(self, conn: sqlite3.Connection) -> None:
        sessions.create_session(conn, "s1", 1)
        with pytest.raises(sqlite3.IntegrityError):
            sessions.create_session(conn, "s1", 1)

    def test_upsert_updates_counters(self, conn: sqlite3.Connection) -> None:
        sessions.create_session(conn, "s1", 3)
        updated = sessions.upsert_session(
            conn,
            ScrapingSession("s1", total_programs=3, successful_programs=2, failed_programs=1),
        )
        assert (updated.successful_programs, updated.failed_programs) == (2, 1)

    def test_upsert_inserts_missing_session(self, conn: sqlite3.Connection) -> None:
        sessions.upsert_session(conn, ScrapingSession("fresh", total_programs=1))
        assert sessions.get_session(conn, "fresh") is not None

    def test_results_roundtrip_in_order(self, conn: sqlite3.Connection) -> None:
        sessions.create_session(conn, "s1", 2)
        ok = ScrapingResultData(
            program_url="https://catalog.example.edu/programs/cs-bs/",
            program_name="CS - BS",
            status="success",
            pattern_detected="simple",
            navigation_path=[{"url": "https://catalog.example.edu/programs/cs-bs/#threadstext", "type": "threads"}],
            courses_found=40,
            courses_mapped=38,
            unmapped_courses=["CS 4999", "CS 4998"],
            processing_time_ms=1200,
        )
        failed = ScrapingResultData(
            program_url="https://catalog.example.edu/programs/x-bs/",
            program_name="X - BS",
            status="failed",
            error_details={"message": "boom", "stage": "parse"},
        )
        first_id = sessions.insert_result(conn, "s1", ok)
        second_id = sessions.insert_result(conn, "s1", failed)
        assert second_id > first_id

        results = sessions.list_results(conn, "s1")
        assert results == [ok, failed]

    def test_result_requires_session(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            sessions.insert_result(
                conn, "nope", ScrapingResultData(program_url="u", program_name="n", status="failed")
            )
