"""Navigation detection: find the page layout that holds a program's curriculum.

Catalog program pages come in several shapes.  Some put the curriculum in a
"threads" or "concentrations" tab that links out to one page per track,
others have a plain requirements tab, and a few only render the curriculum
on the bare page.  ``NavigationDetector`` tries each shape in a fixed order
and returns the first one whose content passes validation.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Protocol, Sequence
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from catalog_ingest.config import settings
from catalog_ingest.scraper.fetcher import FetchError
from catalog_ingest.scraper.models import (
    DetectionResult,
    NavigationStep,
    RawPage,
    SubLink,
    SubLinkContent,
)
from catalog_ingest.scraper.validator import validate_content

logger = logging.getLogger(__name__)

# (anchor, pattern type), tried in this order.
NAVIGATION_PATTERNS: Sequence[tuple[str, str]] = (
    ("#threadstext", "threads"),
    ("#concentrationstext", "concentrations"),
    ("#requirementstext", "simple"),
    ("", "direct_curriculum"),
)

MULTI_LEVEL_PATTERNS = frozenset({"threads", "concentrations"})

_SLUG_RE = re.compile(r"/programs/([^/#?]+?)-bs\b")


class Renderer(Protocol):
    async def fetch(self, url: str, timeout: Optional[float] = None) -> RawPage: ...


def program_slug(url: str) -> Optional[str]:
    """Return the program slug (``applied-physics``) from a ``...-bs/`` URL."""
    match = _SLUG_RE.search(url)
    return match.group(1) if match else None


def title_case_slug(slug: str) -> str:
    return slug.replace("-", " ").title()


def concentration_name_from_link(text: str, href: str) -> str:
    """Derive a human-readable concentration name for a sub-link.

    Prefers the part after `` - `` in the link text ("Applied Physics -
    General" -> "General"), then the URL slug, then the raw link text.
    """
    text_match = re.match(r".*?\s+[-\u2013]\s+(.+)$", text)
    if text_match:
        return text_match.group(1).strip()

    slug = program_slug(href)
    if slug:
        return title_case_slug(slug)

    return text


def _same_page(a: str, b: str) -> bool:
    pa, pb = urlparse(a), urlparse(b)
    return (pa.netloc, pa.path.rstrip("/")) == (pb.netloc, pb.path.rstrip("/"))


class NavigationDetector:
    """Try each navigation pattern for a program until one yields valid content."""

    def __init__(
        self,
        renderer: Renderer,
        base_url: Optional[str] = None,
        concentration_suffixes: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.renderer = renderer
        self.base_url = (base_url or settings.catalog_base_url).rstrip("/")
        self.concentration_suffixes = list(
            concentration_suffixes
            if concentration_suffixes is not None
            else settings.concentration_suffixes
        )
        self.timeout = timeout if timeout is not None else settings.request_timeout

    async def detect_and_scrape(self, program_url: str) -> DetectionResult:
        """Return the first pattern whose page validates, or a failure.

        A fetch error or timeout only fails the pattern being tried; the
        remaining patterns are still attempted.
        """
        navigation_path: List[NavigationStep] = []
        last_error: Optional[str] = None

        for anchor, pattern_type in NAVIGATION_PATTERNS:
            full_url = f"{program_url}{anchor}"
            navigation_path.append(NavigationStep(url=full_url, type=pattern_type))
            logger.info("Trying %s: %s", pattern_type, anchor or "direct")

            try:
                result = await self.try_pattern(full_url, pattern_type)
            except Exception as exc:  # noqa: BLE001
                last_error = str(exc) or type(exc).__name__
                logger.info("%s threw error: %s", pattern_type, last_error)
                continue

            if result.success:
                logger.info("Success with %s pattern", pattern_type)
                result.pattern = pattern_type
                result.navigation_path = list(navigation_path)
                return result

            last_error = result.error or "Unknown error"
            logger.info("%s failed: %s", pattern_type, last_error)

        return DetectionResult(
            success=False,
            error=last_error or "All navigation patterns failed",
            navigation_path=navigation_path,
        )

    async def try_pattern(self, url: str, pattern_type: str) -> DetectionResult:
        try:
            page = await self.renderer.fetch(url, timeout=self.timeout)
        except FetchError as exc:
            return DetectionResult(success=False, error=str(exc))

        validation = validate_content(page.html)
        if not validation.is_valid:
            return DetectionResult(
                success=False,
                error=(
                    f"Content validation failed: {validation.reason} "
                    f"({validation.course_count} courses)"
                ),
            )

        if pattern_type in MULTI_LEVEL_PATTERNS:
            sub_links = await self.extract_sub_links(page.html, url)
            if sub_links:
                logger.info("Found %d sub-links, processing...", len(sub_links))
                sub_content = await self.process_sub_links(sub_links)
                return DetectionResult(
                    success=True,
                    content=sub_content,
                    sub_links=sub_links,
                    is_multi_level=True,
                )

        return DetectionResult(success=True, content=page.html)

    async def extract_sub_links(self, html: str, page_url: str) -> List[SubLink]:
        """Collect sibling program pages linked from a threads/concentrations tab.

        Falls back to probing common concentration URLs when the page links
        to none.
        """
        soup = BeautifulSoup(html, "html.parser")
        base_slug = program_slug(page_url)
        links: List[SubLink] = []
        seen: set[str] = set()

        for anchor in soup.select('a[href*="/programs/"]'):
            href = (anchor.get("href") or "").strip()
            text = anchor.get_text(" ", strip=True)
            if not href or len(text) <= 3:
                continue

            full_url = href if href.startswith("http") else urljoin(f"{self.base_url}/", href)
            if _same_page(full_url, page_url) or full_url in seen:
                continue

            slug = program_slug(full_url)
            if base_slug and (slug is None or not slug.startswith(f"{base_slug}-")):
                continue

            name = concentration_name_from_link(text, href)
            if name:
                seen.add(full_url)
                links.append(SubLink(name=name, url=full_url, link_text=text))

        if not links:
            links.extend(await self.discover_hidden_concentrations(page_url))

        return links

    async def process_sub_links(self, sub_links: Sequence[SubLink]) -> Dict[str, SubLinkContent]:
        """Fetch and validate each sub-link in turn; failures stay per-link."""
        results: Dict[str, SubLinkContent] = {}

        for link in sub_links:
            try:
                page = await self.renderer.fetch(link.url, timeout=self.timeout)
            except Exception as exc:  # noqa: BLE001
                results[link.name] = SubLinkContent(
                    url=link.url, error=str(exc) or type(exc).__name__
                )
                continue

            validation = validate_content(page.html)
            if validation.is_valid:
                results[link.name] = SubLinkContent(
                    url=link.url, content=page.html, validation=validation
                )
            else:
                results[link.name] = SubLinkContent(
                    url=link.url,
                    validation=validation,
                    error=f"Validation failed: {validation.reason}",
                )

        return results

    async def discover_hidden_concentrations(self, page_url: str) -> List[SubLink]:
        """Probe ``{slug}-{suffix}-bs/`` URLs and keep the ones that validate."""
        base_name = program_slug(page_url)
        if not base_name:
            return []

        discovered: List[SubLink] = []
        for suffix in self.concentration_suffixes:
            test_url = f"{self.base_url}/programs/{base_name}-{suffix}-bs/"
            try:
                page = await self.renderer.fetch(test_url, timeout=self.timeout)
            except FetchError as exc:
                logger.info("Failed to discover %s concentration: %s", suffix, exc)
                continue

            if page.status_code == 200 and validate_content(page.html).is_valid:
                discovered.append(
                    SubLink(
                        name=title_case_slug(suffix),
                        url=test_url,
                        link_text=f"{base_name} - {suffix}",
                    )
                )

        return discovered
