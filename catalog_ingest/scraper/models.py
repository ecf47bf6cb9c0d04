"""Data models for the fetch / validate / navigate stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union


@dataclass(frozen=True)
class Program:
    """A degree program seed: display name plus catalog URL."""

    name: str
    url: str
    type: Optional[str] = None


@dataclass
class RawPage:
    """The rendered HTML for a single URL fetch."""

    url: str
    html: str
    status_code: int


@dataclass(frozen=True)
class NavigationStep:
    """One attempted navigation strategy, kept for diagnostics."""

    url: str
    type: str


@dataclass
class QualityChecks:
    has_gen_ed_requirements: bool = False
    has_thread_structure: bool = False
    has_credit_information: bool = False
    has_prerequisite_info: bool = False
    course_prefix_diversity: int = 0
    suspicious_patterns: List[str] = field(default_factory=list)


@dataclass
class RecoveryOptions:
    can_recover: bool
    strategy: Optional[str] = None


@dataclass
class ContentValidation:
    """Verdict on whether a fetched page looks like a curriculum page."""

    is_valid: bool
    course_count: int
    content_type: str
    quality_score: int = 0
    quality_checks: QualityChecks = field(default_factory=QualityChecks)
    reason: Optional[str] = None
    recovery_strategy: Optional[str] = None

    @classmethod
    def unknown(cls) -> "ContentValidation":
        return cls(is_valid=False, course_count=0, content_type="unknown")


@dataclass(frozen=True)
class SubLink:
    name: str
    url: str
    link_text: str


@dataclass
class SubLinkContent:
    """A sub-page fetch outcome: content + validation, or an error."""

    url: str
    content: Optional[str] = None
    validation: Optional[ContentValidation] = None
    error: Optional[str] = None


PageContent = Union[str, Dict[str, SubLinkContent]]


@dataclass
class DetectionResult:
    success: bool
    pattern: Optional[str] = None
    content: Optional[PageContent] = None
    navigation_path: List[NavigationStep] = field(default_factory=list)
    sub_links: List[SubLink] = field(default_factory=list)
    error: Optional[str] = None
    is_multi_level: bool = False
