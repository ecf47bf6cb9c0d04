"""Program discovery: build the seed list from the catalog's program index."""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from catalog_ingest.config import settings
from catalog_ingest.scraper.detector import Renderer
from catalog_ingest.scraper.fetcher import FetchError
from catalog_ingest.scraper.models import Program

logger = logging.getLogger(__name__)

PROGRAM_INDEX_PATH = "/programs/#bachelorstext"


def parse_program_index(html: str, base_url: str) -> List[Program]:
    """Return one :class:`Program` per bachelor's program link in *html*.

    Links are deduplicated by absolute URL; the first link text wins.
    """
    soup = BeautifulSoup(html, "html.parser")
    programs: List[Program] = []
    seen: set[str] = set()

    for anchor in soup.select('a[href*="/programs/"][href*="-bs"]'):
        href = (anchor.get("href") or "").strip()
        text = anchor.get_text(" ", strip=True)
        if not href or not text:
            continue
        url = href if href.startswith("http") else urljoin(f"{base_url}/", href)
        if url in seen:
            continue
        seen.add(url)
        programs.append(Program(name=text, url=url, type="BS"))

    return programs


async def discover_programs(
    renderer: Renderer,
    listing_url: Optional[str] = None,
    base_url: Optional[str] = None,
) -> List[Program]:
    """Fetch the program index and return the discovered BS programs.

    A failed fetch is logged and yields an empty list.
    """
    base = (base_url or settings.catalog_base_url).rstrip("/")
    url = listing_url or f"{base}{PROGRAM_INDEX_PATH}"
    logger.info("Discovering programs from %s", url)

    try:
        page = await renderer.fetch(url)
    except FetchError as exc:
        logger.error("Failed to discover programs: %s", exc)
        return []

    programs = parse_program_index(page.html, base)
    logger.info("Discovered %d BS programs", len(programs))
    return programs
