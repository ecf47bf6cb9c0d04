"""Visible text of a catalog page, as both the validator and the parser read it."""

from __future__ import annotations

from bs4 import BeautifulSoup

_INVISIBLE_TAGS = ["script", "style", "noscript"]


def load_page(html: str) -> BeautifulSoup:
    """Parse *html* with non-rendered elements removed."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(_INVISIBLE_TAGS):
        tag.decompose()
    return soup


def visible_text(html: str) -> str:
    """Space-joined text of *html*; entities such as ``&#160;`` are decoded."""
    return load_page(html).get_text(" ")
