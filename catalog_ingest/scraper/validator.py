"""Content validation: is this fetched page a genuine curriculum page?

The verdict does not depend on which navigation pattern produced the page.
A page is accepted when it carries enough distinct course codes, or, failing
that, when it shows enough curriculum-like signals to be worth recovering.
"""

from __future__ import annotations

import re
from typing import List

from catalog_ingest.scraper.course_codes import course_prefix, extract_course_codes
from catalog_ingest.scraper.models import ContentValidation, QualityChecks, RecoveryOptions
from catalog_ingest.scraper.page_text import visible_text

FULL_CURRICULUM_MIN = 15
PARTIAL_CURRICULUM_MIN = 8
MINIMAL_CURRICULUM_MIN = 5
MIN_DOCUMENT_LENGTH = 2000

GEN_ED_KEYWORDS = ("humanities", "social science", "wellness", "constitution")
THREAD_KEYWORDS = ("thread", "concentration", "track", "option")
CREDIT_RE = re.compile(r"(\d+)\s*(?:credit|hour|hr)", re.IGNORECASE)

# Recovery indicator groups; three of four must be present.
_RECOVERY_INDICATORS = (
    re.compile(r"course|curriculum|requirement", re.IGNORECASE),
    re.compile(r"georgia tech|gatech|institute", re.IGNORECASE),
    re.compile(r"bachelor|master|degree|major", re.IGNORECASE),
    re.compile(r"thread|concentration|track|option", re.IGNORECASE),
)


def classify_course_count(course_count: int) -> str:
    if course_count >= FULL_CURRICULUM_MIN:
        return "full_curriculum"
    if course_count >= PARTIAL_CURRICULUM_MIN:
        return "partial_curriculum"
    if course_count >= MINIMAL_CURRICULUM_MIN:
        return "minimal_curriculum"
    return "insufficient_content"


def perform_quality_checks(content: str, courses: List[str]) -> QualityChecks:
    lower = content.lower()
    checks = QualityChecks()

    checks.has_gen_ed_requirements = any(k in lower for k in GEN_ED_KEYWORDS)
    checks.has_thread_structure = any(k in lower for k in THREAD_KEYWORDS)
    checks.has_credit_information = len(CREDIT_RE.findall(content)) > 3
    checks.has_prerequisite_info = "prerequisite" in lower or "corequisite" in lower

    prefixes = {p for p in (course_prefix(c) for c in courses) if p}
    checks.course_prefix_diversity = len(prefixes)

    if courses and checks.course_prefix_diversity < 2:
        checks.suspicious_patterns.append("low_prefix_diversity")
    if "bs/ms option" in lower and len(courses) < 10:
        checks.suspicious_patterns.append("program_options_only")
    if "admission" in lower and "requirement" not in lower:
        checks.suspicious_patterns.append("admissions_page")

    return checks


def check_recovery_options(content: str) -> RecoveryOptions:
    """Decide whether a page with too few course codes is still usable."""
    hits = sum(1 for pattern in _RECOVERY_INDICATORS if pattern.search(content))
    if hits >= 3:
        return RecoveryOptions(can_recover=True, strategy="try_alternative_navigation")

    lower = content.lower()
    if "prerequisite" in lower or "corequisite" in lower:
        return RecoveryOptions(can_recover=True, strategy="extract_prerequisite_info")

    return RecoveryOptions(can_recover=False)


def calculate_content_quality(validation: ContentValidation, content: str) -> int:
    score = 0

    if validation.course_count >= FULL_CURRICULUM_MIN:
        score += 40
    elif validation.course_count >= PARTIAL_CURRICULUM_MIN:
        score += 25
    elif validation.course_count >= MINIMAL_CURRICULUM_MIN:
        score += 15

    checks = validation.quality_checks
    if checks.has_gen_ed_requirements:
        score += 15
    if checks.has_thread_structure:
        score += 10
    if checks.has_credit_information:
        score += 15
    if checks.course_prefix_diversity >= 3:
        score += 10
    if checks.course_prefix_diversity >= 5:
        score += 5

    if "program_options_only" in checks.suspicious_patterns:
        score -= 20
    if "admissions_page" in checks.suspicious_patterns:
        score -= 30
    if "low_prefix_diversity" in checks.suspicious_patterns:
        score -= 10

    if len(content) < MIN_DOCUMENT_LENGTH:
        score -= 10

    return max(0, min(100, score))


def validate_content(content: str) -> ContentValidation:
    """Score *content* (raw HTML or text) as a curriculum page.

    Codes and keywords are read from the visible text, the same text the
    parser extracts from; the length penalty applies to the raw document.
    """
    content = content or ""
    text = visible_text(content)
    courses = extract_course_codes(text)
    course_count = len(courses)
    content_type = classify_course_count(course_count)

    validation = ContentValidation(
        is_valid=content_type != "insufficient_content",
        course_count=course_count,
        content_type=content_type,
    )
    if not validation.is_valid:
        validation.reason = "Too few courses found"

    validation.quality_checks = perform_quality_checks(text, courses)

    if not validation.is_valid:
        recovery = check_recovery_options(text)
        if recovery.can_recover:
            validation.is_valid = True
            validation.content_type = "recoverable_content"
            validation.recovery_strategy = recovery.strategy

    validation.quality_score = calculate_content_quality(validation, content)
    return validation
