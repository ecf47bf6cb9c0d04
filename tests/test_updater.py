"""Tests for persistence of mapped programs and the non-critical side effects."""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from catalog_ingest.db import get_connection, init_db, programs, sessions
from catalog_ingest.db.models import ScrapingResultData
from catalog_ingest.mapping.models import (
    CourseDetails,
    CreditValidationIssue,
    MappedCategory,
    MappingResult,
)
from catalog_ingest.parser.models import Footnote
from catalog_ingest.pipeline.effects import SideEffectResult, non_critical
from catalog_ingest.pipeline.results import ScrapingStats
from catalog_ingest.pipeline.updater import DatabaseUpdater, infer_degree_type
from catalog_ingest.scraper.models import Program


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def updater(conn: sqlite3.Connection) -> DatabaseUpdater:
    return DatabaseUpdater(conn)


_PROGRAM = Program(name="Computer Science - BS", url="https://catalog.example.edu/programs/cs-bs/")


def _mapping(course_ids: list[int], quality: int = 90, **kwargs) -> MappingResult:
    details = [CourseDetails(code=f"CS {1300 + i}", id=i, credits=3) for i in course_ids]
    return MappingResult(
        program_name=kwargs.pop("program_name", "Bachelor of Science in Computer Science"),
        pattern="simple",
        mapped_requirements={
            "core": MappedCategory(
                name="Core",
                kind="category",
                selection_rule="required",
                course_ids=course_ids,
                course_details=details,
                expected_credits=9,
                actual_credits=3 * len(course_ids),
                credit_validation_issue=len(course_ids) != 3,
            ),
            "gen_ed_humanities": MappedCategory(
                name="Humanities", kind="gen_ed", selection_rule="any_from_category"
            ),
        },
        credit_validation_issues=[CreditValidationIssue("core", 9, 3 * len(course_ids), details)]
        if len(course_ids) != 3
        else [],
        mapped_count=len(course_ids),
        total_courses=len(course_ids) + 1,
        unmapped_courses=["CS 4999"],
        quality_score=quality,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Degree type
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "name,expected",
    [
        ("Bachelor of Science in Physics", "BS"),
        ("Master of Science in Physics", "MS"),
        ("Doctor of Philosophy in Physics", "PhD"),
        ("Physics PhD", "PhD"),
        ("Minor in Physics", "minor"),
        ("Physics", "BS"),
    ],
)
def test_infer_degree_type(name: str, expected: str) -> None:
    assert infer_degree_type(name) == expected


# ---------------------------------------------------------------------------
# update_program
# ---------------------------------------------------------------------------

class TestUpdateProgram:
    def test_creates_record_with_requirements(self, updater: DatabaseUpdater) -> None:
        mapping = _mapping([1, 2, 3])
        mapping.footnotes = {
            4: Footnote(content="A maximum of 6 credit hours", rule_type="credit_limit"),
            3: Footnote(content="Minimum grade of C in CS 1331", rule_type="grade_requirement",
                        mapped_courses=["CS 1331"]),
        }

        record = updater.update_program(_PROGRAM, mapping, "simple")

        assert record.name == "Bachelor of Science in Computer Science"
        assert record.degree_type == "BS"
        assert record.requirements["core"]["course_ids"] == [1, 2, 3]
        assert set(record.gen_ed_requirements) == {"gen_ed_humanities"}

        meta = record.scraping_metadata
        assert meta["source_url"] == _PROGRAM.url
        assert meta["pattern_detected"] == "simple"
        assert meta["courses_mapped"] == 3
        assert meta["total_courses"] == 4
        assert meta["unmapped_courses"] == ["CS 4999"]
        assert meta["quality_score"] == 90
        assert meta["credit_validation_issues"] == []
        assert "last_scraped" in meta

        footnotes = programs.list_footnotes(updater.conn, record.id)
        assert [(f.footnote_number, f.rule_type) for f in footnotes] == [
            (3, "grade_requirement"), (4, "credit_limit"),
        ]
        assert footnotes[0].parsed_data["mapped_courses"] == ["CS 1331"]

    def test_latest_mapping_wins(self, updater: DatabaseUpdater) -> None:
        first = updater.update_program(_PROGRAM, _mapping([1, 2, 3]), "simple")
        second = updater.update_program(_PROGRAM, _mapping([7], quality=40), "direct_curriculum")

        assert second.id == first.id
        assert second.requirements["core"]["course_ids"] == [7]
        assert second.scraping_metadata["quality_score"] == 40
        assert second.scraping_metadata["pattern_detected"] == "direct_curriculum"
        assert second.scraping_metadata["credit_validation_issues"][0]["expected"] == 9
        assert len(programs.list_programs(updater.conn)) == 1

    def test_falls_back_to_seed_name(self, updater: DatabaseUpdater) -> None:
        record = updater.update_program(_PROGRAM, _mapping([1], program_name=None), "simple")
        assert record.name == "Computer Science - BS"

    def test_concentration_record(self, updater: DatabaseUpdater) -> None:
        mapping = _mapping(
            [1, 2, 3],
            program_name="Computer Science - BS - Devices",
            concentration_name="Devices",
        )
        record = updater.update_program(_PROGRAM, mapping, "threads_multi_level")

        assert record.base_program_name == "Computer Science - BS"
        assert record.concentration_name == "Devices"
        assert record.requires_concentration is True

    def test_concentration_found_by_base_name(self, updater: DatabaseUpdater) -> None:
        existing = programs.create_program(
            updater.conn, "CS BS (Devices)", "Computer Science - BS", "Devices", "BS"
        )
        mapping = _mapping(
            [1, 2, 3],
            program_name="Computer Science - BS - Devices",
            concentration_name="Devices",
        )
        record = updater.update_program(_PROGRAM, mapping, "threads_multi_level")
        assert record.id == existing.id
        assert record.name == "CS BS (Devices)"

    def test_persistence_error_propagates(self, updater: DatabaseUpdater) -> None:
        updater.conn.close()
        with pytest.raises(sqlite3.ProgrammingError):
            updater.update_program(_PROGRAM, _mapping([1]), "simple")


# ---------------------------------------------------------------------------
# Sessions and audit log
# ---------------------------------------------------------------------------

class TestSessionsAndLog:
    def test_create_then_update_session(self, updater: DatabaseUpdater) -> None:
        stats = ScrapingStats(total_programs=3)
        session = updater.create_session("s1", stats)
        assert session.session_metadata["scraper_version"]

        stats.record("success")
        stats.record("partial")
        stats.record("critical_error")
        result = updater.update_session("s1", stats)

        assert result == SideEffectResult(ok=True)
        stored = sessions.get_session(updater.conn, "s1")
        assert stored is not None
        assert (stored.successful_programs, stored.partial_programs, stored.failed_programs) == (1, 1, 1)

    def test_create_session_is_critical(self, updater: DatabaseUpdater) -> None:
        updater.create_session("s1", ScrapingStats(total_programs=1))
        with pytest.raises(sqlite3.IntegrityError):
            updater.create_session("s1", ScrapingStats(total_programs=1))

    def test_log_result(self, updater: DatabaseUpdater) -> None:
        updater.create_session("s1", ScrapingStats(total_programs=1))
        data = ScrapingResultData(program_url=_PROGRAM.url, program_name=_PROGRAM.name, status="success")
        assert updater.log_result("s1", data).ok
        assert sessions.list_results(updater.conn, "s1") == [data]

    def test_log_result_failure_is_swallowed(self, updater: DatabaseUpdater) -> None:
        data = ScrapingResultData(program_url=_PROGRAM.url, program_name=_PROGRAM.name, status="failed")
        result = updater.log_result("no-such-session", data)

        assert result.ok is False
        assert isinstance(result.error, sqlite3.IntegrityError)
        with pytest.raises(sqlite3.IntegrityError):
            result.raise_for_error()

    def test_update_session_failure_is_swallowed(self, updater: DatabaseUpdater) -> None:
        updater.conn.close()
        result = updater.update_session("s1", ScrapingStats())
        assert result.ok is False


class TestNonCritical:
    def test_wraps_and_preserves_name(self) -> None:
        @non_critical
        def flush() -> None:
            raise RuntimeError("disk full")

        result = flush()
        assert flush.__name__ == "flush"
        assert result.ok is False
        assert str(result.error) == "disk full"

    def test_success(self) -> None:
        calls = []

        @non_critical
        def record(value: int) -> None:
            calls.append(value)

        assert record(3).ok is True
        assert calls == [3]
        record(4).raise_for_error()
