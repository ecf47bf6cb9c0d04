"""Compose the extraction passes into a :class:`ParseResult`.

Single pages run every pass over one document.  Multi-level programs (a
threads/concentrations tab that links to one page per track) parse each
sub-page independently; a sub-page that failed to fetch or parse contributes
an empty result carrying its error and never aborts its siblings.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Union

from catalog_ingest.parser import passes
from catalog_ingest.parser.document import CatalogDocument
from catalog_ingest.parser.gen_ed import extract_gen_ed_requirements
from catalog_ingest.parser.models import ConcentrationParseResult, ParseResult
from catalog_ingest.scraper.course_codes import extract_course_codes, unique
from catalog_ingest.scraper.models import ContentValidation, SubLinkContent

logger = logging.getLogger(__name__)


def _referenced_courses(result: ParseResult) -> Iterable[str]:
    for category in result.category_requirements.values():
        yield from category.courses
    for selection in result.selection_requirements.values():
        yield from selection.options
    for gen_ed in result.gen_ed_requirements.values():
        yield from gen_ed.course_codes
    for footnote in result.footnotes.values():
        yield from footnote.mapped_courses


def _merge_keys(target: List[str], keys: Iterable[str]) -> None:
    for key in keys:
        if key not in target:
            target.append(key)


class ContentParser:
    """Turn validated page content into structured requirements."""

    def parse_content(
        self,
        content: Union[str, Mapping[str, SubLinkContent]],
        pattern: str,
    ) -> ParseResult:
        logger.info("Parsing content with %s pattern...", pattern)
        if isinstance(content, str):
            return self.parse_single_page(content, pattern)
        return self.parse_multi_level(content, pattern)

    def parse_single_page(self, html: str, pattern: str = "direct_curriculum") -> ParseResult:
        doc = CatalogDocument.from_html(html)
        result = ParseResult(pattern=pattern)

        # Order matters: later passes append to the category keys of earlier ones.
        result.extracted_courses = extract_course_codes(doc.text)

        category_pass = passes.extract_category_blocks(doc)
        result.category_requirements = category_pass.requirements
        _merge_keys(result.categories, category_pass.categories)

        result.selection_requirements = passes.extract_selection_requirements(doc)
        _merge_keys(result.categories, result.selection_requirements)

        result.footnotes = passes.extract_footnotes(doc.lines)

        result.flexible_requirements = passes.extract_flexible_requirements(doc.text)
        _merge_keys(result.categories, result.flexible_requirements)

        gen_ed_pass = extract_gen_ed_requirements(doc.text)
        result.gen_ed_requirements = gen_ed_pass.requirements
        result.gen_ed_warnings = gen_ed_pass.warnings
        _merge_keys(result.categories, result.gen_ed_requirements)
        for warning in gen_ed_pass.warnings:
            logger.warning("Gen-ed check: %s", warning)

        result.program_name = passes.extract_program_name(doc)
        result.concentration_name = passes.extract_concentration_name(result.program_name)

        # Every bucket course is also an extracted course.
        result.extracted_courses = unique([*result.extracted_courses, *_referenced_courses(result)])

        logger.info(
            "Parsed: %d courses, %d categories",
            result.courses_found,
            len(result.category_requirements),
        )
        return result

    def parse_multi_level(
        self,
        sub_content: Mapping[str, SubLinkContent],
        pattern: str,
    ) -> ParseResult:
        result = ParseResult(pattern=f"{pattern}_multi_level")
        courses: List[str] = []

        for name, data in sub_content.items():
            if data.error or data.content is None:
                result.concentrations[name] = ConcentrationParseResult(
                    source_url=data.url,
                    validation=data.validation or ContentValidation.unknown(),
                    error=data.error or "No content",
                )
                continue

            try:
                parsed = self.parse_single_page(data.content, "concentration_page")
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to parse %s: %s", name, exc)
                result.concentrations[name] = ConcentrationParseResult(
                    source_url=data.url,
                    validation=ContentValidation.unknown(),
                    error=str(exc) or type(exc).__name__,
                )
                continue

            result.concentrations[name] = _as_concentration(
                parsed, data.url, data.validation or ContentValidation.unknown()
            )
            courses.extend(parsed.extracted_courses)
            _merge_keys(result.categories, parsed.categories)

        result.extracted_courses = unique(courses)
        return result


def _as_concentration(
    parsed: ParseResult,
    source_url: str,
    validation: ContentValidation,
) -> ConcentrationParseResult:
    fields: Dict[str, object] = {
        name: getattr(parsed, name) for name in ParseResult.__dataclass_fields__
    }
    return ConcentrationParseResult(**fields, source_url=source_url, validation=validation)
