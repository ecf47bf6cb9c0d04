"""Persist mapped programs, session counters and the per-program audit log.

``update_program`` is on the critical path and lets persistence errors
propagate.  ``update_session`` and ``log_result`` are non-critical: they
return a :class:`~catalog_ingest.pipeline.effects.SideEffectResult` and never
raise.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, List

from catalog_ingest.db import programs, sessions
from catalog_ingest.db.models import (
    DegreeProgram,
    FootnoteRecord,
    ScrapingResultData,
    ScrapingSession,
)
from catalog_ingest.mapping.models import MappingResult
from catalog_ingest.parser.models import Footnote
from catalog_ingest.pipeline.effects import non_critical
from catalog_ingest.pipeline.results import ScrapingStats
from catalog_ingest.scraper.models import Program

logger = logging.getLogger(__name__)

SCRAPER_VERSION = "1.0.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def infer_degree_type(program_name: str) -> str:
    if "Bachelor" in program_name:
        return "BS"
    if "Master" in program_name:
        return "MS"
    if "Doctor" in program_name or "PhD" in program_name:
        return "PhD"
    if "Minor" in program_name:
        return "minor"
    return "BS"


def _footnote_records(footnotes: Dict[int, Footnote]) -> List[FootnoteRecord]:
    return [
        FootnoteRecord(
            footnote_number=number,
            footnote_content=footnote.content,
            rule_type=footnote.rule_type,
            course_codes_mentioned=list(footnote.mapped_courses),
            parsed_data={
                "content": footnote.content,
                "rule_type": footnote.rule_type,
                "mapped_courses": list(footnote.mapped_courses),
            },
        )
        for number, footnote in sorted(footnotes.items())
    ]


class DatabaseUpdater:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, session_id: str, stats: ScrapingStats) -> ScrapingSession:
        session = sessions.create_session(
            self.conn,
            session_id,
            stats.total_programs,
            metadata={"started_at": _now(), "scraper_version": SCRAPER_VERSION},
        )
        logger.info("Created scraping session: %s", session_id)
        return session

    @non_critical
    def update_session(self, session_id: str, stats: ScrapingStats) -> None:
        sessions.upsert_session(
            self.conn,
            ScrapingSession(
                session_id=session_id,
                total_programs=stats.total_programs,
                successful_programs=stats.successful_programs,
                failed_programs=stats.failed_programs,
                partial_programs=stats.partial_programs,
                session_metadata={
                    "scraper_version": SCRAPER_VERSION,
                    "last_updated": _now(),
                },
            ),
        )

    # ------------------------------------------------------------------
    # Programs
    # ------------------------------------------------------------------

    def update_program(
        self, program: Program, mapping_result: MappingResult, pattern: str
    ) -> DegreeProgram:
        """Find or create the program record and overwrite its requirements.

        Lookup order: exact name, then base name plus concentration.  The
        stored ``requirements`` are replaced wholesale by the latest mapping
        and the program's footnotes are deleted and re-inserted.

        Raises:
            sqlite3.Error: On any persistence failure.
        """
        name = mapping_result.program_name or program.name
        concentration = mapping_result.concentration_name
        base_name = name.replace(f" - {concentration}", "") if concentration else name

        record = programs.find_by_name(self.conn, name)
        if record is None and concentration:
            record = programs.find_by_concentration(self.conn, base_name, concentration)
        if record is None:
            record = programs.create_program(
                self.conn,
                name=name,
                base_program_name=base_name,
                concentration_name=concentration,
                degree_type=infer_degree_type(name),
                scraping_metadata={
                    "created_by_scraper": True,
                    "source_url": program.url,
                    "created_at": _now(),
                },
            )
            logger.info("Created new degree program: %s - %s", record.id, name)

        metadata: Dict[str, Any] = {
            "last_scraped": _now(),
            "source_url": program.url,
            "pattern_detected": pattern,
            "courses_mapped": mapping_result.mapped_count,
            "total_courses": mapping_result.total_courses,
            "unmapped_courses": list(mapping_result.unmapped_courses),
            "quality_score": mapping_result.quality_score,
            "credit_validation_issues": [
                asdict(issue) for issue in mapping_result.credit_validation_issues
            ],
        }

        updated = programs.save_requirements(
            self.conn,
            record.id,
            requirements=mapping_result.requirements_document(),
            gen_ed_requirements=mapping_result.gen_ed_document(),
            scraping_metadata=metadata,
            footnotes=_footnote_records(mapping_result.footnotes),
        )
        logger.info("Updated database record: %s", updated.id)
        return updated

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    @non_critical
    def log_result(self, session_id: str, data: ScrapingResultData) -> None:
        sessions.insert_result(self.conn, session_id, data)
