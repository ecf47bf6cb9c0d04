"""High-level runner for a full ingest run.

``run_ingest`` wires together the DB layer, the renderer, the course catalog
and the orchestrator, and releases the connection and the browser on exit
whether the run succeeded, raised, or was cancelled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

from catalog_ingest.db import get_connection, init_db
from catalog_ingest.mapping.catalog import CourseCatalog
from catalog_ingest.mapping.mapper import CourseMapper
from catalog_ingest.parser.parser import ContentParser
from catalog_ingest.pipeline.orchestrator import CatalogScraper
from catalog_ingest.pipeline.results import ProcessingResult, ScrapingStats
from catalog_ingest.pipeline.updater import DatabaseUpdater
from catalog_ingest.scraper.detector import NavigationDetector
from catalog_ingest.scraper.fetcher import CatalogRenderer
from catalog_ingest.scraper.models import Program

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    session_id: str
    results: List[ProcessingResult] = field(default_factory=list)
    stats: ScrapingStats = field(default_factory=ScrapingStats)
    summary: str = ""


async def run_ingest(
    programs: Sequence[Program],
    db_path: Optional[Union[Path, str]] = None,
    renderer_factory: Callable[[], Any] = CatalogRenderer,
    **scraper_options: Any,
) -> RunReport:
    """Ingest *programs* into the catalog database.

    Args:
        programs: Seeds to process, in order.
        db_path: Override the DB path.  Defaults to ``settings.db_path``.
        renderer_factory: Zero-argument callable returning an async context
            manager that exposes ``fetch``.  Defaults to :class:`CatalogRenderer`.
        **scraper_options: Forwarded to :class:`CatalogScraper` (for example
            ``rate_limit_delay``).

    Returns:
        A :class:`RunReport` with the ordered per-program results.
    """
    conn = get_connection(db_path)
    try:
        init_db(conn)
        catalog = CourseCatalog.from_connection(conn)
        updater = DatabaseUpdater(conn)

        async with renderer_factory() as renderer:
            scraper = CatalogScraper(
                detector=NavigationDetector(renderer),
                parser=ContentParser(),
                mapper=CourseMapper(catalog),
                updater=updater,
                **scraper_options,
            )
            updater.create_session(scraper.session_id, ScrapingStats(total_programs=len(programs)))
            logger.info("Scraper initialized with session: %s", scraper.session_id)

            results = await scraper.scrape_all_programs(programs)

        return RunReport(
            session_id=scraper.session_id,
            results=results,
            stats=scraper.stats,
            summary=scraper.summary,
        )
    finally:
        conn.close()
        logger.info("Scraper resources cleaned up")
