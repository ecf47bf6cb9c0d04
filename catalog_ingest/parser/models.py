"""Intermediate representation produced by the content parser.

Every requirement bucket carries a ``kind`` discriminator so consumers can
dispatch on the bucket type instead of guessing from loose keys:

* ``category``: a headed block of courses (``Core Requirements``)
* ``selection``: "select N of the following"
* ``gen_ed``: an institution-wide general-education area
* ``flexible``: a credit quota with no enumerated course list
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from catalog_ingest.scraper.models import ContentValidation


@dataclass
class CategoryRequirement:
    name: str
    courses: List[str]
    credits_required: Optional[int] = None
    alternative_courses: List[str] = field(default_factory=list)
    selection_rule: str = "required"
    kind: str = field(default="category", init=False)


@dataclass
class SelectionRequirement:
    name: str
    quantity: int
    options: List[str]
    credits_required: Optional[int] = None
    source_text: str = ""
    kind: str = field(default="selection", init=False)

    @property
    def selection_rule(self) -> str:
        return f"choose_{self.quantity}"


@dataclass
class GenEdRequirement:
    name: str
    credits_required: Optional[int]
    selection_rule: str
    course_codes: List[str] = field(default_factory=list)
    constraints: Dict[str, Any] = field(default_factory=dict)
    source_text: str = ""
    kind: str = field(default="gen_ed", init=False)


@dataclass
class FlexibleRequirement:
    name: str
    credits_required: int
    category_filter: str
    source_text: str = ""
    selection_rule: str = "flexible"
    kind: str = field(default="flexible", init=False)


RequirementBucket = Union[
    CategoryRequirement, SelectionRequirement, GenEdRequirement, FlexibleRequirement
]


@dataclass
class Footnote:
    content: str
    rule_type: str
    mapped_courses: List[str] = field(default_factory=list)


@dataclass
class ParseResult:
    """Structured curriculum data for one page, or an aggregate of sub-pages."""

    pattern: str = ""
    category_requirements: Dict[str, CategoryRequirement] = field(default_factory=dict)
    selection_requirements: Dict[str, SelectionRequirement] = field(default_factory=dict)
    gen_ed_requirements: Dict[str, GenEdRequirement] = field(default_factory=dict)
    flexible_requirements: Dict[str, FlexibleRequirement] = field(default_factory=dict)
    footnotes: Dict[int, Footnote] = field(default_factory=dict)
    extracted_courses: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    program_name: Optional[str] = None
    concentration_name: Optional[str] = None
    gen_ed_warnings: List[str] = field(default_factory=list)
    concentrations: Dict[str, "ConcentrationParseResult"] = field(default_factory=dict)

    @property
    def courses_found(self) -> int:
        return len(self.extracted_courses)

    @property
    def is_multi_level(self) -> bool:
        return bool(self.concentrations)

    def buckets(self) -> Dict[str, RequirementBucket]:
        """Every requirement bucket under the key it is persisted with.

        Gen-ed keys are prefixed ``gen_ed_``; a flexible bucket whose key is
        already taken is prefixed ``flexible_``.
        """
        out: Dict[str, RequirementBucket] = {}
        out.update(self.category_requirements)
        out.update(self.selection_requirements)
        for key, gen_ed in self.gen_ed_requirements.items():
            out[f"gen_ed_{key}"] = gen_ed
        for key, flexible in self.flexible_requirements.items():
            out[key if key not in out else f"flexible_{key}"] = flexible
        return out


@dataclass
class ConcentrationParseResult(ParseResult):
    source_url: str = ""
    validation: ContentValidation = field(default_factory=ContentValidation.unknown)
    error: Optional[str] = None
