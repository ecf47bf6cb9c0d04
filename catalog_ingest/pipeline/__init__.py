"""Ingest pipeline: orchestration, persistence and the top-level runner."""

from catalog_ingest.pipeline.effects import SideEffectResult, non_critical
from catalog_ingest.pipeline.orchestrator import CatalogScraper, format_summary
from catalog_ingest.pipeline.results import ProcessingResult, ScrapingStats
from catalog_ingest.pipeline.runner import RunReport, run_ingest
from catalog_ingest.pipeline.updater import DatabaseUpdater, infer_degree_type

__all__ = [
    "CatalogScraper",
    "DatabaseUpdater",
    "ProcessingResult",
    "RunReport",
    "ScrapingStats",
    "SideEffectResult",
    "format_summary",
    "infer_degree_type",
    "non_critical",
    "run_ingest",
]
