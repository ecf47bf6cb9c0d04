"""Content parser package: curriculum pages -> :class:`ParseResult`."""

from catalog_ingest.parser.models import (
    CategoryRequirement,
    ConcentrationParseResult,
    FlexibleRequirement,
    Footnote,
    GenEdRequirement,
    ParseResult,
    RequirementBucket,
    SelectionRequirement,
)
from catalog_ingest.parser.parser import ContentParser

__all__ = [
    "CategoryRequirement",
    "ConcentrationParseResult",
    "ContentParser",
    "FlexibleRequirement",
    "Footnote",
    "GenEdRequirement",
    "ParseResult",
    "RequirementBucket",
    "SelectionRequirement",
]
