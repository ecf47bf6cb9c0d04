"""Reconcile parsed course codes against the course catalog.

Every bucket of a :class:`ParseResult` is looked up code by code.  Category
buckets additionally get a credit check: the summed credits of the mapped
courses must be within :data:`CREDIT_TOLERANCE` of the declared total, or
the category is flagged for review.  Nothing here is fatal; issues are
recorded on the result.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from catalog_ingest.mapping.models import (
    CourseDetails,
    CourseInfo,
    CreditValidationIssue,
    MappedCategory,
    MappingResult,
    ValidationIssue,
)
from catalog_ingest.parser.models import (
    CategoryRequirement,
    FlexibleRequirement,
    GenEdRequirement,
    ParseResult,
    RequirementBucket,
    SelectionRequirement,
)
from catalog_ingest.scraper.course_codes import unique

logger = logging.getLogger(__name__)

CREDIT_TOLERANCE = 1
UNMAPPED_WEIGHT = 40
CREDIT_ISSUE_WEIGHT = 20
HIGH_MAPPING_RATE = 0.95
HIGH_MAPPING_BONUS = 10

EXPECTED_GEN_ED = ("humanities", "social_science", "wellness")
HIGH_CREDIT_THRESHOLD = 20


def _bucket_codes(bucket: RequirementBucket) -> List[str]:
    if isinstance(bucket, CategoryRequirement):
        return list(bucket.courses)
    if isinstance(bucket, SelectionRequirement):
        return list(bucket.options)
    if isinstance(bucket, GenEdRequirement):
        return list(bucket.course_codes)
    return []


class CourseMapper:
    """Map course codes to catalog ids using an injected, read-only catalog."""

    def __init__(self, catalog: Mapping[str, CourseInfo]) -> None:
        self.catalog = catalog

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _lookup(self, codes: Iterable[str]) -> Tuple[List[CourseDetails], List[str]]:
        found: List[CourseDetails] = []
        missing: List[str] = []
        for code in codes:
            info = self.catalog.get(code)
            if info is None:
                missing.append(code)
            else:
                found.append(CourseDetails(code=code, id=info.id, credits=info.credits))
        return found, missing

    # ------------------------------------------------------------------
    # Buckets
    # ------------------------------------------------------------------

    def map_category_with_validation(
        self, key: str, category: CategoryRequirement
    ) -> MappedCategory:
        details, missing = self._lookup(category.courses)
        actual = sum(d.credits or 0 for d in details)
        expected = category.credits_required
        issue = bool(expected) and abs(actual - expected) > CREDIT_TOLERANCE

        return MappedCategory(
            name=category.name,
            kind=category.kind,
            selection_rule=category.selection_rule or "required",
            course_ids=[d.id for d in details],
            course_details=details,
            unmapped_courses=missing,
            expected_credits=expected,
            actual_credits=actual,
            credit_validation_issue=issue,
            alternative_courses=list(category.alternative_courses),
        )

    def _map_selection(self, selection: SelectionRequirement) -> MappedCategory:
        details, missing = self._lookup(selection.options)
        return MappedCategory(
            name=selection.name,
            kind=selection.kind,
            selection_rule=selection.selection_rule,
            course_ids=[d.id for d in details],
            course_details=details,
            unmapped_courses=missing,
            expected_credits=selection.credits_required,
            source_text=selection.source_text,
        )

    def _map_gen_ed(self, gen_ed: GenEdRequirement) -> MappedCategory:
        details, missing = self._lookup(gen_ed.course_codes)
        return MappedCategory(
            name=gen_ed.name,
            kind=gen_ed.kind,
            selection_rule=gen_ed.selection_rule,
            course_ids=[d.id for d in details],
            course_details=details,
            unmapped_courses=missing,
            expected_credits=gen_ed.credits_required,
            constraints=dict(gen_ed.constraints),
            source_text=gen_ed.source_text,
        )

    @staticmethod
    def _map_flexible(flexible: FlexibleRequirement) -> MappedCategory:
        # Credit-only quota: nothing to look up.
        return MappedCategory(
            name=flexible.name,
            kind=flexible.kind,
            selection_rule=flexible.selection_rule,
            expected_credits=flexible.credits_required,
            category_filter=flexible.category_filter,
            source_text=flexible.source_text,
        )

    def _map_bucket(self, key: str, bucket: RequirementBucket) -> MappedCategory:
        if isinstance(bucket, CategoryRequirement):
            return self.map_category_with_validation(key, bucket)
        if isinstance(bucket, SelectionRequirement):
            return self._map_selection(bucket)
        if isinstance(bucket, GenEdRequirement):
            return self._map_gen_ed(bucket)
        if isinstance(bucket, FlexibleRequirement):
            return self._map_flexible(bucket)
        raise TypeError(f"Unknown requirement bucket: {type(bucket).__name__}")

    # ------------------------------------------------------------------
    # Programs
    # ------------------------------------------------------------------

    def map_to_database(self, parse_result: ParseResult) -> MappingResult:
        logger.info("Mapping course codes with credit validation...")
        result = MappingResult(
            program_name=parse_result.program_name,
            concentration_name=parse_result.concentration_name,
            pattern=parse_result.pattern,
            footnotes=dict(parse_result.footnotes),
        )

        referenced: List[str] = []
        mapped_codes: Set[str] = set()
        unmapped: List[str] = []

        for key, bucket in parse_result.buckets().items():
            mapped = self._map_bucket(key, bucket)
            result.mapped_requirements[key] = mapped
            referenced.extend(_bucket_codes(bucket))
            mapped_codes.update(mapped.mapped_codes)
            unmapped.extend(mapped.unmapped_courses)

            if mapped.credit_validation_issue:
                result.credit_validation_issues.append(
                    CreditValidationIssue(
                        category=key,
                        expected=mapped.expected_credits or 0,
                        actual=mapped.actual_credits or 0,
                        courses=list(mapped.course_details),
                    )
                )

        result.unmapped_courses = unique(unmapped)
        result.mapped_count = len(mapped_codes)
        result.total_courses = len(set(parse_result.extracted_courses) | set(referenced))
        result.quality_score = calculate_mapping_quality(result)

        result.validation_issues = self.validate_patterns(result)
        for issue in result.validation_issues:
            logger.warning("Mapping check (%s): %s", issue.type, issue.message)

        logger.info(
            "Mapped %d/%d courses (quality %d)",
            result.mapped_count,
            result.total_courses,
            result.quality_score,
        )
        return result

    def map_concentrations(
        self, parse_result: ParseResult, base_name: Optional[str] = None
    ) -> Dict[str, MappingResult]:
        """Map every successfully parsed concentration of a multi-level result.

        Each mapping is named ``"{base} - {concentration}"`` so it is stored
        as its own degree program.
        """
        base = base_name or parse_result.program_name or "Unknown Program"
        mappings: Dict[str, MappingResult] = {}
        for name, concentration in parse_result.concentrations.items():
            if concentration.error:
                logger.warning("Skipping concentration %s: %s", name, concentration.error)
                continue
            mapping = self.map_to_database(concentration)
            mapping.program_name = f"{base} - {name}"
            mapping.concentration_name = name
            mappings[name] = mapping
        return mappings

    # ------------------------------------------------------------------
    # Advisory checks
    # ------------------------------------------------------------------

    @staticmethod
    def validate_patterns(mapping_result: MappingResult) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        keys = [key.lower() for key in mapping_result.mapped_requirements]

        found_gen_ed = [area for area in EXPECTED_GEN_ED if any(area in key for key in keys)]
        if len(found_gen_ed) < 2 and not mapping_result.pattern.startswith("threads"):
            issues.append(
                ValidationIssue(
                    type="missing_gen_ed",
                    message="Missing expected general education categories",
                )
            )

        for key, mapped in mapping_result.mapped_requirements.items():
            expected = mapped.expected_credits
            if expected and expected > HIGH_CREDIT_THRESHOLD and len(mapped.course_ids) < 3:
                issues.append(
                    ValidationIssue(
                        type="high_credit_few_courses",
                        category=key,
                        message=f"{expected} credits with only {len(mapped.course_ids)} courses",
                    )
                )
        return issues


def calculate_mapping_quality(result: MappingResult) -> int:
    """Score a mapping from 0 to 100.

    Starts at 100, loses up to 40 for unmapped courses and up to 20 for
    categories with credit issues, and gains 10 when more than 95% of the
    courses mapped.  An empty result takes the full unmapped penalty.
    """
    score = 100.0
    total = result.total_courses

    if total > 0:
        score -= (total - result.mapped_count) / total * UNMAPPED_WEIGHT
    else:
        score -= UNMAPPED_WEIGHT

    categories = len(result.mapped_requirements)
    if categories:
        score -= len(result.credit_validation_issues) / categories * CREDIT_ISSUE_WEIGHT

    if total > 0 and result.mapped_count / total > HIGH_MAPPING_RATE:
        score += HIGH_MAPPING_BONUS

    return max(0, min(100, round(score)))
