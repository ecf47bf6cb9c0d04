"""Drive each program through detect -> parse -> map -> update.

Programs are processed strictly one at a time, in input order, with a fixed
delay between them.  Each program ends in ``success``, ``partial`` or
``failed``; an exception that escapes the per-program boundary is recorded
as ``critical_error`` and the run moves on to the next program.
"""

from __future__ import annotations

import asyncio
import logging
import time
import traceback
import uuid
from dataclasses import asdict
from typing import List, Optional, Sequence

from catalog_ingest.config import settings
from catalog_ingest.db.models import ScrapingResultData
from catalog_ingest.mapping.mapper import CourseMapper
from catalog_ingest.parser.models import ParseResult
from catalog_ingest.parser.parser import ContentParser
from catalog_ingest.pipeline import results as states
from catalog_ingest.pipeline.results import ProcessingResult, ScrapingStats
from catalog_ingest.pipeline.updater import DatabaseUpdater
from catalog_ingest.scraper.course_codes import unique
from catalog_ingest.scraper.detector import NavigationDetector
from catalog_ingest.scraper.models import DetectionResult, Program

logger = logging.getLogger(__name__)


class CatalogScraper:
    def __init__(
        self,
        detector: NavigationDetector,
        parser: ContentParser,
        mapper: CourseMapper,
        updater: DatabaseUpdater,
        session_id: Optional[str] = None,
        rate_limit_delay: Optional[float] = None,
        session_flush_interval: Optional[int] = None,
        min_course_count: Optional[int] = None,
    ) -> None:
        self.detector = detector
        self.parser = parser
        self.mapper = mapper
        self.updater = updater
        self.session_id = session_id or str(uuid.uuid4())
        self.rate_limit_delay = (
            rate_limit_delay if rate_limit_delay is not None else settings.rate_limit_delay
        )
        self.session_flush_interval = max(
            1, session_flush_interval or settings.session_flush_interval
        )
        self.min_course_count = (
            min_course_count if min_course_count is not None else settings.min_course_count
        )
        self.stats = ScrapingStats()
        self.summary = ""
        self._started = time.monotonic()

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def scrape_all_programs(self, programs: Sequence[Program]) -> List[ProcessingResult]:
        logger.info("Starting to scrape %d programs...", len(programs))
        self._started = time.monotonic()
        self.stats.total_programs = len(programs)
        results: List[ProcessingResult] = []

        for index, program in enumerate(programs, start=1):
            logger.info("[%d/%d] Processing: %s", index, len(programs), program.name)
            try:
                result = await self.process_degree_program(program)
            except Exception as exc:  # noqa: BLE001
                logger.error("Critical error processing %s: %s", program.name, exc, exc_info=True)
                result = ProcessingResult(
                    program_name=program.name,
                    status=states.CRITICAL_ERROR,
                    error=str(exc) or type(exc).__name__,
                )
            results.append(result)
            self.stats.record(result.status)

            if index % self.session_flush_interval == 0:
                self.updater.update_session(self.session_id, self.stats)
                logger.info(
                    "Progress: %d/%d (%d%%)",
                    index,
                    len(programs),
                    round(index / len(programs) * 100),
                )

            if index < len(programs):
                await asyncio.sleep(self.rate_limit_delay)

        self.updater.update_session(self.session_id, self.stats)
        self.summary = format_summary(
            results, self.stats, time.monotonic() - self._started, self.session_id
        )
        logger.info("\n%s", self.summary)
        return results

    # ------------------------------------------------------------------
    # One program
    # ------------------------------------------------------------------

    async def process_degree_program(self, program: Program) -> ProcessingResult:
        started = time.monotonic()
        state = states.PENDING

        try:
            state = self._transition(program, states.DETECTING)
            detection = await self.detector.detect_and_scrape(program.url)
            if not detection.success:
                return self._handle_failed_detection(program, detection)

            state = self._transition(program, states.PARSING)
            parse_result = self.parser.parse_content(detection.content, detection.pattern)
            if parse_result.courses_found < self.min_course_count:
                return self._handle_insufficient_content(program, parse_result)

            state = self._transition(program, states.MAPPING)
            if parse_result.is_multi_level:
                mappings = list(
                    self.mapper.map_concentrations(parse_result, base_name=program.name).values()
                )
            else:
                mappings = [self.mapper.map_to_database(parse_result)]

            state = self._transition(program, states.UPDATING)
            for mapping in mappings:
                self.updater.update_program(program, mapping, detection.pattern)

            courses_mapped = sum(m.mapped_count for m in mappings)
            unmapped = unique(code for m in mappings for code in m.unmapped_courses)
            concentrations = [m.concentration_name for m in mappings if m.concentration_name]
            elapsed_ms = _elapsed_ms(started)

            self.updater.log_result(
                self.session_id,
                ScrapingResultData(
                    program_url=program.url,
                    program_name=program.name,
                    concentration_name=", ".join(concentrations) or None,
                    status=states.SUCCESS,
                    pattern_detected=detection.pattern,
                    navigation_path=[asdict(step) for step in detection.navigation_path],
                    courses_found=parse_result.courses_found,
                    courses_mapped=courses_mapped,
                    unmapped_courses=unmapped,
                    processing_time_ms=elapsed_ms,
                ),
            )
            logger.info(
                "%s: SUCCESS (%d courses, %d mapped)",
                program.name,
                parse_result.courses_found,
                courses_mapped,
            )
            return ProcessingResult(
                program_name=program.name,
                status=states.SUCCESS,
                pattern=detection.pattern,
                courses_found=parse_result.courses_found,
                courses_mapped=courses_mapped,
                unmapped_courses=unmapped,
                processing_time_ms=elapsed_ms,
                concentrations=concentrations,
            )

        except Exception as exc:  # noqa: BLE001
            message = str(exc) or type(exc).__name__
            logger.error("Error processing %s while %s: %s", program.name, state, message, exc_info=True)
            self.updater.log_result(
                self.session_id,
                ScrapingResultData(
                    program_url=program.url,
                    program_name=program.name,
                    status=states.FAILED,
                    error_details={
                        "message": message,
                        "stage": state,
                        "stack": traceback.format_exc(),
                    },
                    processing_time_ms=_elapsed_ms(started),
                ),
            )
            return ProcessingResult(
                program_name=program.name, status=states.FAILED, error=message
            )

    def _transition(self, program: Program, state: str) -> str:
        logger.debug("%s -> %s", program.name, state)
        return state

    def _handle_failed_detection(
        self, program: Program, detection: DetectionResult
    ) -> ProcessingResult:
        logger.warning("%s: Pattern detection failed - %s", program.name, detection.error)
        path = [asdict(step) for step in detection.navigation_path]
        self.updater.log_result(
            self.session_id,
            ScrapingResultData(
                program_url=program.url,
                program_name=program.name,
                status=states.FAILED,
                pattern_detected="detection_failed",
                navigation_path=path,
                error_details={"error": detection.error, "navigation_path": path},
            ),
        )
        return ProcessingResult(
            program_name=program.name,
            status=states.FAILED,
            error=detection.error or "Pattern detection failed",
            details="Pattern detection failed",
        )

    def _handle_insufficient_content(
        self, program: Program, parse_result: ParseResult
    ) -> ProcessingResult:
        logger.warning(
            "%s: Insufficient content - only %d courses found",
            program.name,
            parse_result.courses_found,
        )
        self.updater.log_result(
            self.session_id,
            ScrapingResultData(
                program_url=program.url,
                program_name=program.name,
                status=states.PARTIAL,
                pattern_detected="insufficient_content",
                courses_found=parse_result.courses_found,
                error_details={"reason": "insufficient_course_content"},
            ),
        )
        return ProcessingResult(
            program_name=program.name,
            status=states.PARTIAL,
            courses_found=parse_result.courses_found,
            warning="Insufficient course content detected",
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _percent(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def format_summary(
    results: Sequence[ProcessingResult],
    stats: ScrapingStats,
    elapsed_seconds: float,
    session_id: str,
) -> str:
    """Human-readable end-of-run report listing every failed and partial program."""
    total = stats.total_programs
    lines = [
        "=" * 60,
        "SCRAPING COMPLETE - FINAL SUMMARY",
        "=" * 60,
        f"Total Time: {round(elapsed_seconds)}s",
        f"Total Programs: {total}",
        f"Successful: {stats.successful_programs} ({_percent(stats.successful_programs, total)}%)",
        f"Partial: {stats.partial_programs} ({_percent(stats.partial_programs, total)}%)",
        f"Failed: {stats.failed_programs} ({_percent(stats.failed_programs, total)}%)",
    ]

    failed = [r for r in results if r.status in (states.FAILED, states.CRITICAL_ERROR)]
    if failed:
        lines.append("")
        lines.append("Failed Programs:")
        lines.extend(f"  - {r.program_name}: {r.error}" for r in failed)

    partial = [r for r in results if r.status == states.PARTIAL]
    if partial:
        lines.append("")
        lines.append("Partial Programs (may need manual review):")
        lines.extend(f"  - {r.program_name}: {r.warning or 'Partial content'}" for r in partial)

    lines.append("")
    lines.append(f"Session ID: {session_id}")
    return "\n".join(lines)
