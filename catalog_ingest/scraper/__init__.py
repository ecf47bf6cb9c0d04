"""Scraper package: page rendering, content validation and navigation."""

from catalog_ingest.scraper.detector import NavigationDetector
from catalog_ingest.scraper.discovery import discover_programs
from catalog_ingest.scraper.fetcher import CatalogRenderer, FetchError, FetchTimeoutError
from catalog_ingest.scraper.models import ContentValidation, DetectionResult, Program, RawPage
from catalog_ingest.scraper.validator import validate_content

__all__ = [
    "CatalogRenderer",
    "ContentValidation",
    "DetectionResult",
    "FetchError",
    "FetchTimeoutError",
    "NavigationDetector",
    "Program",
    "RawPage",
    "discover_programs",
    "validate_content",
]
