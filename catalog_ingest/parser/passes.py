"""Independent extraction passes over a :class:`CatalogDocument`.

Each pass is a pure function of the document (or its text) and returns only
the structure it is responsible for; :class:`~catalog_ingest.parser.parser.ContentParser`
merges the pieces.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bs4 import NavigableString, Tag

from catalog_ingest.parser.document import CatalogDocument, block_of
from catalog_ingest.parser.models import (
    CategoryRequirement,
    FlexibleRequirement,
    Footnote,
    SelectionRequirement,
)
from catalog_ingest.scraper.course_codes import (
    extract_course_codes,
    has_course_codes,
    is_valid_course_code,
    normalise,
    unique,
)

CATEGORY_KEYWORDS = (
    "requirement", "core", "major", "elective", "field of study",
    "wellness", "mathematics", "science", "humanities", "writing",
    "social science", "technology", "institutional priority",
)

HEADER_SELECTOR = "strong, b, h3, h4"
MAX_CATEGORY_SIBLINGS = 40
SELECTION_LOOKAHEAD = 5

_TRAILING_NUMBER = re.compile(r"\b(\d{1,3})\s*$")
_ALTERNATIVE_RE = re.compile(r"\bor\s+([A-Z]{2,4})\s?(\d{4}[A-Z]?)\b")
_SELECTION_RE = re.compile(
    r"select\s+(one|two|three|four|five|six|seven|eight|nine|ten|\d+)\s+of\s+the\s+following:?\s*(\d+)?",
    re.IGNORECASE,
)
_FOOTNOTE_RE = re.compile(r"^[ \t]*(\d{1,2})[ \t]*:[ \t]*(.+?)[ \t]*$", re.MULTILINE)
_FLEXIBLE_RE = re.compile(
    r"\b(any\s+(?:social\s+science|[a-z]+)|free\s+electives?|electives?)\s*:?\s*(\d{1,2})\b",
    re.IGNORECASE,
)

_NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

_FLEXIBLE_CATEGORIES = {
    "hum": "humanities",
    "humanities": "humanities",
    "ss": "social_science",
    "social science": "social_science",
    "free": "free_electives",
    "free elective": "free_electives",
    "free electives": "free_electives",
    "elective": "electives",
    "electives": "electives",
}


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------

def normalize_category_name(text: str) -> str:
    """``"Core Requirements 15"`` -> ``"core_requirements_15"``."""
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")


def is_category_header(text: str) -> bool:
    lower = text.lower()
    return any(keyword in lower for keyword in CATEGORY_KEYWORDS)


def convert_quantity_to_number(quantity: str) -> int:
    """``"two"`` -> 2, ``"3"`` -> 3; anything unparseable counts as 1."""
    word = quantity.lower().strip()
    if word in _NUMBER_WORDS:
        return _NUMBER_WORDS[word]
    try:
        return int(word)
    except ValueError:
        return 1


def detect_selection_rule(text: str) -> str:
    if re.search(r"\bor\b", text, re.IGNORECASE):
        return "choose_one_alternative"
    if re.search(r"select\s+(one|1)\b", text, re.IGNORECASE):
        return "choose_one"
    if re.search(r"select\s+(two|2)\b", text, re.IGNORECASE):
        return "choose_two"
    if re.search(r"select\s+(three|3)\b", text, re.IGNORECASE):
        return "choose_three"
    return "required"


def parse_alternatives(text: str) -> List[str]:
    """Course codes introduced by "or" (``"CS 1301 or CS 1315"`` -> ``["CS 1315"]``)."""
    codes = (normalise(m.group(1), m.group(2)) for m in _ALTERNATIVE_RE.finditer(text))
    return [c for c in unique(codes) if is_valid_course_code(c)]


def detect_declared_credits(*texts: str) -> Optional[int]:
    """Return the first trailing bare number (1–3 digits) among *texts*."""
    for text in texts:
        match = _TRAILING_NUMBER.search(text.strip())
        if match:
            return int(match.group(1))
    return None


def detect_footnote_rule_type(content: str) -> str:
    lower = content.lower()
    if "must be chosen from" in lower:
        return "course_options"
    if "minimum grade" in lower:
        return "grade_requirement"
    if "maximum" in lower and "credit" in lower:
        return "credit_limit"
    if re.search(r"\bif\b", lower) and re.search(r"\bthen\b", lower):
        return "conditional_rule"
    return "general_rule"


def map_flexible_category(token: str) -> str:
    """Normalise a flexible-requirement token to a category key.

    ``"Any HUM"`` -> ``humanities``, ``"Any SS"`` -> ``social_science``,
    ``"Free Electives"`` -> ``free_electives``.
    """
    lower = re.sub(r"\s+", " ", token.lower()).strip()
    if lower.startswith("any "):
        lower = lower[4:]
    return _FLEXIBLE_CATEGORIES.get(lower, lower.replace(" ", "_"))


def _text(element: Tag) -> str:
    return element.get_text(" ", strip=True)


# ---------------------------------------------------------------------------
# Category blocks
# ---------------------------------------------------------------------------

@dataclass
class CategoryPass:
    categories: List[str] = field(default_factory=list)
    requirements: Dict[str, CategoryRequirement] = field(default_factory=dict)


def _is_category_boundary(element: Tag) -> bool:
    candidates = [element] if element.name in ("h3", "h4", "strong", "b") else []
    candidates.extend(element.select(HEADER_SELECTOR))
    for candidate in candidates:
        text = _text(candidate)
        if len(text) > 5 and is_category_header(text):
            return True
    return False


def extract_category_content(header: Tag) -> tuple[str, str, str]:
    """Return ``(header block text, full span text, last element text)``.

    The span starts at the header's block and runs over following siblings
    until the next category header (or ``MAX_CATEGORY_SIBLINGS``).
    """
    block = block_of(header)
    block_text = _text(block)
    parts = [block_text]
    for count, sibling in enumerate(block.find_next_siblings()):
        if count >= MAX_CATEGORY_SIBLINGS or _is_category_boundary(sibling):
            break
        parts.append(_text(sibling))
    return block_text, " ".join(p for p in parts if p), parts[-1]


def _span_total(content: str, tail: str) -> str:
    # a trailing number on a course row is that course's credits, not a total
    return "" if has_course_codes(tail) else content


def extract_category_blocks(doc: CatalogDocument) -> CategoryPass:
    result = CategoryPass()

    for header in doc.soup.select(HEADER_SELECTOR):
        header_text = _text(header)
        if len(header_text) < 3 or len(header_text) > 100:
            continue
        if not is_category_header(header_text):
            continue

        key = normalize_category_name(header_text)
        if key not in result.categories:
            result.categories.append(key)

        block_text, content, tail = extract_category_content(header)
        courses = extract_course_codes(content)
        if not courses:
            continue

        result.requirements[key] = CategoryRequirement(
            name=header_text,
            courses=courses,
            credits_required=detect_declared_credits(
                header_text, block_text, _span_total(content, tail)
            ),
            alternative_courses=parse_alternatives(content),
            selection_rule=detect_selection_rule(content),
        )

    return result


# ---------------------------------------------------------------------------
# Selection requirements
# ---------------------------------------------------------------------------

def _following_content(block: Tag, remainder: str) -> str:
    """Course-bearing text after a selection phrase (bounded lookahead)."""
    parts = [remainder] if has_course_codes(remainder) else []
    for depth, sibling in enumerate(block.find_next_siblings()):
        if depth >= SELECTION_LOOKAHEAD or _is_category_boundary(sibling):
            break
        text = _text(sibling)
        if has_course_codes(text):
            parts.append(text)
    return " ".join(parts)


def extract_selection_requirements(doc: CatalogDocument) -> Dict[str, SelectionRequirement]:
    results: Dict[str, SelectionRequirement] = {}
    seen_blocks: set[int] = set()

    for string in doc.soup.find_all(string=_SELECTION_RE):
        if not isinstance(string, NavigableString) or string.parent is None:
            continue
        block = block_of(string.parent)
        if id(block) in seen_blocks:
            continue
        seen_blocks.add(id(block))

        block_text = _text(block)
        match = _SELECTION_RE.search(block_text)
        if not match:
            continue

        following = _following_content(block, block_text[match.end():])
        courses = extract_course_codes(following)
        if not courses:
            continue

        key = f"selection_{len(results) + 1}"
        results[key] = SelectionRequirement(
            name=match.group(0).strip(),
            quantity=convert_quantity_to_number(match.group(1)),
            options=courses,
            credits_required=int(match.group(2)) if match.group(2) else None,
            source_text=following,
        )

    return results


# ---------------------------------------------------------------------------
# Footnotes
# ---------------------------------------------------------------------------

def extract_footnotes(text: str) -> Dict[int, Footnote]:
    """Parse ``"N: text"`` footnote definitions (1 <= N <= 19) from *text*."""
    footnotes: Dict[int, Footnote] = {}
    for match in _FOOTNOTE_RE.finditer(text):
        number = int(match.group(1))
        if not 0 < number < 20:
            continue
        content = match.group(2)
        footnotes[number] = Footnote(
            content=content,
            rule_type=detect_footnote_rule_type(content),
            mapped_courses=extract_course_codes(content),
        )
    return footnotes


# ---------------------------------------------------------------------------
# Flexible requirements
# ---------------------------------------------------------------------------

def extract_flexible_requirements(text: str) -> Dict[str, FlexibleRequirement]:
    """Parse credit quotas such as ``Any HUM 6`` or ``Free Electives 15``."""
    results: Dict[str, FlexibleRequirement] = {}
    for match in _FLEXIBLE_RE.finditer(text):
        token = re.sub(r"\s+", " ", match.group(1)).strip()
        key = map_flexible_category(token)
        results[key] = FlexibleRequirement(
            name=token,
            credits_required=int(match.group(2)),
            category_filter=key,
            source_text=re.sub(r"\s+", " ", match.group(0)).strip(),
        )
    return results


# ---------------------------------------------------------------------------
# Program / concentration names
# ---------------------------------------------------------------------------

_DEGREE_WORDS = ("Bachelor", "Master", "Doctor")


def extract_program_name(doc: CatalogDocument) -> Optional[str]:
    for selector in ("h1", "title", ".page-title", ".program-title"):
        element = doc.soup.select_one(selector)
        if element is None:
            continue
        text = _text(element)
        if any(word in text for word in _DEGREE_WORDS):
            return text

    heading = doc.soup.select_one("h1, h2")
    if heading is not None:
        return _text(heading) or None
    return None


def extract_concentration_name(program_name: Optional[str]) -> Optional[str]:
    """``"BS in Applied Physics - General"`` -> ``"General"``."""
    if not program_name:
        return None
    match = re.match(r".*?\s+[-–]\s+(.+)$", program_name)
    return match.group(1).strip() if match else None

