"""Tests for the per-program pipeline and the run loop.

The real detector, parser, mapper and updater are wired together over an
in-memory database; only the renderer is faked.
"""

from __future__ import annotations

import sqlite3
from typing import Dict, Generator, List, Optional
from unittest.mock import AsyncMock, patch

import pytest

from catalog_ingest.db import courses, get_connection, init_db, programs, sessions
from catalog_ingest.mapping.catalog import CourseCatalog
from catalog_ingest.mapping.mapper import CourseMapper
from catalog_ingest.parser.parser import ContentParser
from catalog_ingest.pipeline.orchestrator import CatalogScraper, format_summary
from catalog_ingest.pipeline.results import ProcessingResult, ScrapingStats
from catalog_ingest.pipeline.updater import DatabaseUpdater
from catalog_ingest.scraper.detector import NavigationDetector
from catalog_ingest.scraper.fetcher import FetchError
from catalog_ingest.scraper.models import Program, RawPage


# ---------------------------------------------------------------------------
# Fixtures / constants
# ---------------------------------------------------------------------------

_BASE = "https://catalog.example.edu"
_SESSION = "test-session"

_CODES = ["CS 1301", "CS 1331", "CS 1332", "MATH 1551", "MATH 1552"]


def _curriculum(title: str, codes: List[str]) -> str:
    items = "".join(f"<li>{code} Course</li>" for code in codes)
    return f"<html><body><h1>{title}</h1><ul>{items}</ul></body></html>"


_CS = Program("Computer Science - BS", f"{_BASE}/programs/computer-science-bs/")
_THIN = Program("Music Technology - BS", f"{_BASE}/programs/music-technology-bs/")
_MISSING = Program("Missing Program - BS", f"{_BASE}/programs/missing-bs/")
_PHYSICS = Program("Physics - BS", f"{_BASE}/programs/physics-bs/")

_PAGES = {
    _CS.url: _curriculum("Bachelor of Science in Computer Science", _CODES),
    _THIN.url: (
        "<html><body><p>Curriculum for the degree. Choose a thread.</p>"
        "<ul><li>CS 1301</li><li>CS 1331</li><li>MATH 1551</li></ul></body></html>"
    ),
    _MISSING.url: "<html><body>Page not found</body></html>",
    _PHYSICS.url: (
        _curriculum("Bachelor of Science in Physics", _CODES).replace(
            "</ul>",
            '</ul><a href="/programs/physics-general-bs/">Physics - General</a>'
            '<a href="/programs/physics-optics-bs/">Physics - Optics</a>',
        )
    ),
    f"{_BASE}/programs/physics-general-bs/": _curriculum("Physics - General", _CODES),
    f"{_BASE}/programs/physics-optics-bs/": _curriculum("Physics - Optics", _CODES + ["PHYS 3122"]),
}


class FakeRenderer:
    def __init__(self, pages: Dict[str, str]) -> None:
        self.pages = pages

    async def fetch(self, url: str, timeout: Optional[float] = None) -> RawPage:
        key = url.split("#")[0]
        if key not in self.pages:
            raise FetchError(url, "HTTP 404", status_code=404)
        return RawPage(url=url, html=self.pages[key], status_code=200)


@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    courses.import_courses(connection, [(code, f"{code} title", 3) for code in _CODES])
    yield connection
    connection.close()


def _scraper(conn: sqlite3.Connection, **options) -> CatalogScraper:
    updater = DatabaseUpdater(conn)
    updater.create_session(_SESSION, ScrapingStats())
    options.setdefault("rate_limit_delay", 0)
    options.setdefault("min_course_count", 5)
    return CatalogScraper(
        detector=NavigationDetector(
            FakeRenderer(_PAGES), base_url=_BASE, concentration_suffixes=[], timeout=1
        ),
        parser=ContentParser(),
        mapper=CourseMapper(CourseCatalog.from_connection(conn)),
        updater=updater,
        session_id=_SESSION,
        **options,
    )


# ---------------------------------------------------------------------------
# process_degree_program
# ---------------------------------------------------------------------------

class TestProcessDegreeProgram:
    async def test_success_persists_program_and_audit(self, conn: sqlite3.Connection) -> None:
        result = await _scraper(conn).process_degree_program(_CS)

        assert result.status == "success"
        assert result.pattern == "threads"
        assert result.courses_found == 5
        assert result.courses_mapped == 5
        assert result.unmapped_courses == []

        record = programs.find_by_name(conn, "Bachelor of Science in Computer Science")
        assert record is not None
        assert record.scraping_metadata["source_url"] == _CS.url

        (audit,) = sessions.list_results(conn, _SESSION)
        assert audit.status == "success"
        assert audit.courses_found == 5
        assert audit.navigation_path == [{"url": f"{_CS.url}#threadstext", "type": "threads"}]

    async def test_insufficient_content_is_partial(self, conn: sqlite3.Connection) -> None:
        result = await _scraper(conn).process_degree_program(_THIN)

        assert result.status == "partial"
        assert result.courses_found == 3
        assert result.warning == "Insufficient course content detected"
        assert programs.list_programs(conn) == []

        (audit,) = sessions.list_results(conn, _SESSION)
        assert audit.status == "partial"
        assert audit.pattern_detected == "insufficient_content"

    async def test_detection_failure(self, conn: sqlite3.Connection) -> None:
        result = await _scraper(conn).process_degree_program(_MISSING)

        assert result.status == "failed"
        assert result.details == "Pattern detection failed"
        assert "Content validation failed" in (result.error or "")

        (audit,) = sessions.list_results(conn, _SESSION)
        assert audit.pattern_detected == "detection_failed"
        assert len(audit.navigation_path) == 4
        assert audit.error_details is not None and len(audit.error_details["navigation_path"]) == 4

    async def test_persistence_error_fails_program(self, conn: sqlite3.Connection) -> None:
        scraper = _scraper(conn)
        with patch.object(
            scraper.updater,
            "update_program",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            result = await scraper.process_degree_program(_CS)

        assert result.status == "failed"
        assert result.error == "database is locked"

        (audit,) = sessions.list_results(conn, _SESSION)
        assert audit.status == "failed"
        assert audit.error_details is not None
        assert audit.error_details["stage"] == "updating"
        assert "OperationalError" in audit.error_details["stack"]

    async def test_audit_failure_does_not_fail_program(self, conn: sqlite3.Connection) -> None:
        scraper = _scraper(conn)
        scraper.session_id = "unknown-session"
        result = await scraper.process_degree_program(_CS)

        assert result.status == "success"
        assert sessions.list_results(conn, "unknown-session") == []

    async def test_multi_level_saves_each_concentration(self, conn: sqlite3.Connection) -> None:
        result = await _scraper(conn).process_degree_program(_PHYSICS)

        assert result.status == "success"
        assert result.concentrations == ["General", "Optics"]
        assert result.unmapped_courses == ["PHYS 3122"]
        assert result.courses_found == 6

        names = sorted(p.name for p in programs.list_programs(conn))
        assert names == ["Physics - BS - General", "Physics - BS - Optics"]
        optics = programs.find_by_name(conn, "Physics - BS - Optics")
        assert optics is not None
        assert optics.base_program_name == "Physics - BS"
        assert optics.concentration_name == "Optics"

        (audit,) = sessions.list_results(conn, _SESSION)
        assert audit.concentration_name == "General, Optics"


# ---------------------------------------------------------------------------
# scrape_all_programs
# ---------------------------------------------------------------------------

class TestScrapeAllPrograms:
    async def test_mixed_run(self, conn: sqlite3.Connection) -> None:
        scraper = _scraper(conn)
        results = await scraper.scrape_all_programs([_CS, _THIN, _MISSING])

        assert [r.program_name for r in results] == [_CS.name, _THIN.name, _MISSING.name]
        assert [r.status for r in results] == ["success", "partial", "failed"]
        assert (
            scraper.stats.total_programs,
            scraper.stats.successful_programs,
            scraper.stats.partial_programs,
            scraper.stats.failed_programs,
        ) == (3, 1, 1, 1)

        stored = sessions.get_session(conn, _SESSION)
        assert stored is not None
        assert (stored.successful_programs, stored.partial_programs, stored.failed_programs) == (1, 1, 1)
        assert len(sessions.list_results(conn, _SESSION)) == 3

        assert "Failed Programs:" in scraper.summary
        assert _MISSING.name in scraper.summary
        assert "Partial Programs (may need manual review):" in scraper.summary

    async def test_escaped_exception_is_critical_error(self, conn: sqlite3.Connection) -> None:
        scraper = _scraper(conn)
        ok = ProcessingResult(program_name=_CS.name, status="success")
        with patch.object(
            scraper,
            "process_degree_program",
            AsyncMock(side_effect=[RuntimeError("browser died"), ok]),
        ):
            results = await scraper.scrape_all_programs([_MISSING, _CS])

        assert [r.status for r in results] == ["critical_error", "success"]
        assert results[0].error == "browser died"
        assert scraper.stats.failed_programs == 1
        assert scraper.stats.successful_programs == 1
        assert "browser died" in scraper.summary

    async def test_session_flushed_every_interval_and_at_end(self, conn: sqlite3.Connection) -> None:
        scraper = _scraper(conn, session_flush_interval=2)
        with patch.object(
            scraper.updater, "update_session", wraps=scraper.updater.update_session
        ) as flush:
            await scraper.scrape_all_programs([_MISSING] * 5)

        # after programs 2 and 4, plus the final flush
        assert flush.call_count == 3

    async def test_delay_only_between_programs(self, conn: sqlite3.Connection) -> None:
        scraper = _scraper(conn, rate_limit_delay=0.5)
        with patch(
            "catalog_ingest.pipeline.orchestrator.asyncio.sleep", new=AsyncMock()
        ) as sleep:
            await scraper.scrape_all_programs([_MISSING, _MISSING, _MISSING])

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    async def test_empty_program_list(self, conn: sqlite3.Connection) -> None:
        scraper = _scraper(conn)
        assert await scraper.scrape_all_programs([]) == []
        assert "Total Programs: 0" in scraper.summary


class TestFormatSummary:
    def test_lists_failed_and_partial(self) -> None:
        stats = ScrapingStats(total_programs=4, successful_programs=1, failed_programs=2, partial_programs=1)
        results = [
            ProcessingResult(program_name="A", status="success"),
            ProcessingResult(program_name="B", status="failed", error="no content"),
            ProcessingResult(program_name="C", status="critical_error", error="crash"),
            ProcessingResult(program_name="D", status="partial", warning="thin page"),
        ]
        summary = format_summary(results, stats, 12.4, "abc")

        assert "SCRAPING COMPLETE - FINAL SUMMARY" in summary
        assert "Successful: 1 (25%)" in summary
        assert "Failed: 2 (50%)" in summary
        assert "  - B: no content" in summary
        assert "  - C: crash" in summary
        assert "  - D: thin page" in summary
        assert summary.endswith("Session ID: abc")

    def test_clean_run_has_no_problem_sections(self) -> None:
        summary = format_summary(
            [ProcessingResult(program_name="A", status="success")],
            ScrapingStats(total_programs=1, successful_programs=1),
            1.0,
            "abc",
        )
        assert "Failed Programs:" not in summary
        assert "Partial Programs" not in summary
