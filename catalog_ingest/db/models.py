"""Dataclass models representing DB rows.

These are plain Python objects, not ORM models.  The CRUD modules serialise
JSON columns to and from these types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass
class Course:
    id: int
    code: str
    title: Optional[str]
    credits: Optional[float]


@dataclass
class DegreeProgram:
    id: int
    name: str
    base_program_name: Optional[str]
    concentration_name: Optional[str]
    degree_type: str
    total_credits: int
    requirements: dict[str, Any]
    gen_ed_requirements: dict[str, Any]
    requires_concentration: bool
    scraping_metadata: dict[str, Any]
    created_at: int
    updated_at: int


@dataclass
class FootnoteRecord:
    footnote_number: int
    footnote_content: str
    rule_type: str
    course_codes_mentioned: list[str] = field(default_factory=list)
    parsed_data: dict[str, Any] = field(default_factory=dict)
    degree_program_id: Optional[int] = None


@dataclass
class ScrapingSession:
    session_id: str
    total_programs: int = 0
    successful_programs: int = 0
    failed_programs: int = 0
    partial_programs: int = 0
    session_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScrapingResultData:
    """One append-only audit record for a processed program."""

    program_url: str
    program_name: str
    status: str
    concentration_name: Optional[str] = None
    pattern_detected: Optional[str] = None
    navigation_path: list[dict[str, str]] = field(default_factory=list)
    courses_found: Optional[int] = None
    courses_mapped: Optional[int] = None
    unmapped_courses: list[str] = field(default_factory=list)
    processing_time_ms: Optional[int] = None
    error_details: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
