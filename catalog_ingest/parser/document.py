"""Parsed view of one catalog page shared by every extraction pass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup, Tag

from catalog_ingest.scraper.page_text import load_page

_LINE_TAGS = [
    "p", "li", "tr", "dt", "dd", "div", "table", "ul", "ol",
    "h1", "h2", "h3", "h4", "h5", "h6",
]

# Elements that count as their own block for header and phrase lookups.
_BLOCK_TAGS = ("p", "li", "tr", "dt", "dd", "h1", "h2", "h3", "h4", "h5", "h6")


@dataclass(frozen=True)
class CatalogDocument:
    """Immutable bundle of a page's HTML, DOM and text renditions.

    ``text`` joins all text nodes with spaces (for phrase and course-code
    searches); ``lines`` joins them with newlines so line-anchored patterns
    such as footnote definitions still see line starts.
    """

    html: str
    soup: BeautifulSoup
    text: str
    lines: str

    @classmethod
    def from_html(cls, html: str) -> "CatalogDocument":
        soup = load_page(html)
        return cls(
            html=html or "",
            soup=soup,
            text=soup.get_text(" "),
            lines=_block_lines(html),
        )


def _block_lines(html: str) -> str:
    """Render *html* as text with one line per block element.

    Inline markup stays on its line, so a footnote such as
    ``<p>3: Minimum grade in <a>CS 1331</a></p>`` reads as a single line.
    """
    soup = load_page(html)
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for cell in soup.find_all(["td", "th"]):
        cell.insert_after(" ")
    for tag in soup.find_all(_LINE_TAGS):
        tag.insert_after("\n")
    return soup.get_text()


def block_of(element: Tag) -> Tag:
    """Return the closest block-level container of *element*.

    Headings are their own block; inline elements (``strong``, ``b``,
    ``span``) resolve to the surrounding paragraph, list item or table row.
    """
    if element.name in _BLOCK_TAGS:
        return element
    parent: Optional[Tag] = element.find_parent(list(_BLOCK_TAGS))
    if parent is not None:
        return parent
    if isinstance(element.parent, Tag) and element.parent.name != "[document]":
        return element.parent
    return element
