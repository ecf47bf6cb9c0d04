"""Result types produced by the course mapper."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from catalog_ingest.parser.models import Footnote


@dataclass(frozen=True)
class CourseInfo:
    """One catalog course as loaded from the database."""

    id: int
    title: Optional[str] = None
    credits: Optional[float] = None


@dataclass
class CourseDetails:
    code: str
    id: int
    credits: Optional[float] = None


@dataclass
class MappedCategory:
    name: str
    kind: str
    selection_rule: str
    course_ids: List[int] = field(default_factory=list)
    course_details: List[CourseDetails] = field(default_factory=list)
    unmapped_courses: List[str] = field(default_factory=list)
    expected_credits: Optional[int] = None
    actual_credits: Optional[float] = None
    credit_validation_issue: bool = False
    alternative_courses: List[str] = field(default_factory=list)
    constraints: Dict[str, Any] = field(default_factory=dict)
    category_filter: Optional[str] = None
    source_text: Optional[str] = None

    @property
    def mapped_codes(self) -> List[str]:
        return [detail.code for detail in self.course_details]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CreditValidationIssue:
    category: str
    expected: int
    actual: float
    courses: List[CourseDetails] = field(default_factory=list)


@dataclass
class ValidationIssue:
    type: str
    message: str
    severity: str = "warning"
    category: Optional[str] = None


@dataclass
class MappingResult:
    program_name: Optional[str] = None
    pattern: str = ""
    concentration_name: Optional[str] = None
    mapped_requirements: Dict[str, MappedCategory] = field(default_factory=dict)
    credit_validation_issues: List[CreditValidationIssue] = field(default_factory=list)
    unmapped_courses: List[str] = field(default_factory=list)
    mapped_count: int = 0
    total_courses: int = 0
    quality_score: int = 0
    footnotes: Dict[int, Footnote] = field(default_factory=dict)
    validation_issues: List[ValidationIssue] = field(default_factory=list)

    def requirements_document(self) -> Dict[str, Any]:
        """The JSON document persisted as ``degree_programs.requirements``."""
        return {key: mapped.to_dict() for key, mapped in self.mapped_requirements.items()}

    def gen_ed_document(self) -> Dict[str, Any]:
        return {
            key: mapped.to_dict()
            for key, mapped in self.mapped_requirements.items()
            if mapped.kind == "gen_ed"
        }
