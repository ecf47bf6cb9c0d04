"""Page renderer: HTTP fetch with a headless-browser fallback for JS pages.

``CatalogRenderer`` is an async context manager that owns the HTTP client
and, lazily, a Playwright Chromium browser.  Both are released on exit no
matter how the enclosed block ends.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

import httpx

from catalog_ingest.config import settings
from catalog_ingest.scraper.models import RawPage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SPA / JS-rendered page detection heuristics
# ---------------------------------------------------------------------------
_SPA_PATTERNS = [
    re.compile(r'<div[^>]+id=["\'](?:root|app)["\']', re.IGNORECASE),
    re.compile(r"window\.__NEXT_DATA__", re.IGNORECASE),
    re.compile(r"ng-version=", re.IGNORECASE),
    re.compile(r"data-reactroot", re.IGNORECASE),
]


class FetchError(Exception):
    """A page could not be fetched or rendered."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code


class FetchTimeoutError(FetchError):
    """Navigation did not complete within the per-page timeout."""


def _is_spa(html: str) -> bool:
    """Return ``True`` if *html* looks like a JavaScript SPA that needs rendering."""
    for pattern in _SPA_PATTERNS:
        if pattern.search(html):
            return True
    # Very little visible text relative to total HTML size.
    no_scripts = re.sub(
        r"<(script|style)[^>]*>.*?</(script|style)>", "", html,
        flags=re.IGNORECASE | re.DOTALL,
    )
    stripped = re.sub(r"<[^>]+>", "", no_scripts).strip()
    if len(html) > 2000 and len(stripped) < 200:
        return True
    return False


class CatalogRenderer:
    """Fetch rendered HTML for catalog URLs.

    Usage::

        async with CatalogRenderer() as renderer:
            page = await renderer.fetch("https://catalog.example.edu/programs/x/")
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.user_agent = user_agent or settings.user_agent
        self._client: Optional[httpx.AsyncClient] = None
        self._playwright: Any = None
        self._browser: Any = None

    async def __aenter__(self) -> "CatalogRenderer":
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the HTTP client and the browser, if one was launched."""
        try:
            if self._client is not None:
                await self._client.aclose()
        finally:
            self._client = None
            try:
                if self._browser is not None:
                    await self._browser.close()
                if self._playwright is not None:
                    await self._playwright.stop()
            finally:
                self._browser = None
                self._playwright = None
        logger.debug("Renderer resources released")

    async def fetch(self, url: str, timeout: Optional[float] = None) -> RawPage:
        """Fetch *url* and return its rendered HTML.

        Raises:
            FetchTimeoutError: The request or render exceeded *timeout*.
            FetchError: Any other transport failure or a 4xx/5xx response.
        """
        if self._client is None:
            raise RuntimeError("CatalogRenderer used outside 'async with'")

        limit = timeout if timeout is not None else self.timeout
        try:
            response = await self._client.get(url, timeout=limit)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(url, f"Timed out after {limit}s") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise FetchError(url, f"HTTP {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            raise FetchError(url, str(exc) or type(exc).__name__) from exc

        raw = RawPage(url=url, html=response.text, status_code=response.status_code)

        if _is_spa(raw.html):
            logger.debug("SPA fingerprint on %s, rendering in browser", url)
            raw = await self._render(url, limit)

        return raw

    async def _render(self, url: str, timeout: float) -> RawPage:
        """Render *url* with headless Chromium and wait for network idle.

        Playwright is imported lazily so the HTTP path works without a
        browser install.
        """
        from playwright.async_api import Error as PlaywrightError  # noqa: PLC0415
        from playwright.async_api import TimeoutError as PlaywrightTimeout  # noqa: PLC0415
        from playwright.async_api import async_playwright  # noqa: PLC0415

        if self._browser is None:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=True)

        page = await self._browser.new_page()
        try:
            response = await page.goto(
                url,
                timeout=int(timeout * 1000),
                wait_until="networkidle",
            )
            html = await page.content()
        except PlaywrightTimeout as exc:
            raise FetchTimeoutError(url, f"Render timed out after {timeout}s") from exc
        except PlaywrightError as exc:
            raise FetchError(url, str(exc)) from exc
        finally:
            await page.close()

        status = response.status if response is not None else 200
        if status >= 400:
            raise FetchError(url, f"HTTP {status}", status_code=status)
        return RawPage(url=url, html=html, status_code=status)
