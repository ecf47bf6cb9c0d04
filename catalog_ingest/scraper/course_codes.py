"""Course-code shape matching shared by the validator and the parser.

A course code is 2–4 uppercase letters, an optional space, four digits and
an optional trailing letter (``CS 1301``, ``MATH1552``, ``PHYS 2211L``).
Every code is normalised to ``"DEPT 1234"`` so the same course written with
or without the space is counted once.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

COURSE_CODE_RE = re.compile(r"\b([A-Z]{2,4})\s?(\d{4}[A-Z]?)\b")

# Acronyms that happen to precede a 4-digit number in page chrome.
FALSE_POSITIVE_PREFIXES = frozenset(
    {"HTTP", "HTML", "CSS", "API", "URL", "PDF", "FAQ", "ISBN"}
)

# Departments seen on nearly every curriculum page.
COMMON_PREFIXES = frozenset(
    {"CS", "MATH", "PHYS", "CHEM", "ENGL", "HTS", "MGT", "ISYE"}
)

_GENERIC_SHAPE = re.compile(r"^[A-Z]{2,4}\d{4}[A-Z]?$")


def course_prefix(code: str) -> Optional[str]:
    """Return the department prefix of *code* (``"CS 1301"`` -> ``"CS"``)."""
    match = re.match(r"^([A-Z]{2,4})", code)
    return match.group(1) if match else None


def is_valid_course_code(code: str) -> bool:
    """Return ``True`` unless *code* is a known false positive or malformed."""
    prefix = course_prefix(code)
    if prefix is None or prefix in FALSE_POSITIVE_PREFIXES:
        return False
    if prefix in COMMON_PREFIXES:
        return True
    return bool(_GENERIC_SHAPE.match(code.replace(" ", "")))


def normalise(dept: str, number: str) -> str:
    return f"{dept.upper()} {number.upper()}"


def unique(codes: Iterable[str]) -> List[str]:
    """Order-preserving de-duplication."""
    seen: set[str] = set()
    out: List[str] = []
    for code in codes:
        if code not in seen:
            seen.add(code)
            out.append(code)
    return out


def extract_course_codes(text: str) -> List[str]:
    """Return the distinct, filtered course codes in *text* in first-seen order."""
    codes = (normalise(m.group(1), m.group(2)) for m in COURSE_CODE_RE.finditer(text))
    return [c for c in unique(codes) if is_valid_course_code(c)]


def has_course_codes(text: str) -> bool:
    return any(
        is_valid_course_code(normalise(m.group(1), m.group(2)))
        for m in COURSE_CODE_RE.finditer(text)
    )


def parse_course_code(text: str) -> Optional[str]:
    """Normalise a standalone code (``"cs1301"`` -> ``"CS 1301"``), or ``None``."""
    match = COURSE_CODE_RE.fullmatch(text.strip().upper())
    if not match:
        return None
    code = normalise(match.group(1), match.group(2))
    return code if is_valid_course_code(code) else None
