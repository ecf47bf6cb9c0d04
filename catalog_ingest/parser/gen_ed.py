"""General-education requirement extraction.

Catalog pages rarely lay gen-ed requirements out as clean blocks; more often
they are a sentence ("6 credit hours of humanities") or shorthand in a table
("Any HUM 6").  This pass searches the page text for each area of a small
fixed taxonomy and infers credits, courses and the selection rule from the
surrounding context.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from catalog_ingest.parser.models import GenEdRequirement
from catalog_ingest.scraper.course_codes import course_prefix, extract_course_codes

CONTEXT_SIZE = 200
MAX_PLAUSIBLE_CREDITS = 15


@dataclass(frozen=True)
class GenEdArea:
    keywords: Tuple[str, ...]
    expected_credits: Tuple[int, ...]
    prefixes: Tuple[str, ...]


GEN_ED_TAXONOMY: Dict[str, GenEdArea] = {
    "humanities": GenEdArea(
        keywords=("hum", "humanities", "literature", "philosophy", "history"),
        expected_credits=(6, 9),
        prefixes=("ENGL", "HIST", "PHIL", "LMC"),
    ),
    "social_science": GenEdArea(
        keywords=("ss", "social science", "sociology", "psychology", "political"),
        expected_credits=(6, 9),
        prefixes=("PSYC", "SOC", "POL", "ECON", "HTS"),
    ),
    "wellness": GenEdArea(
        keywords=("wellness", "health", "physical education", "pe"),
        expected_credits=(2, 3),
        prefixes=("APPH", "HLTH"),
    ),
    "constitution": GenEdArea(
        keywords=("constitution", "georgia constitution", "us constitution"),
        expected_credits=(0, 3),
        prefixes=("POL", "HIST"),
    ),
    "ethics": GenEdArea(
        keywords=("ethics", "ethical", "eth5"),
        expected_credits=(3,),
        prefixes=("CS", "PHIL", "SLS", "LMC"),
    ),
}

_DISPLAY_NAMES = {
    "hum": "Humanities",
    "humanities": "Humanities",
    "ss": "Social Science",
    "social science": "Social Science",
    "wellness": "Wellness",
    "constitution": "Constitution Requirement",
    "ethics": "Ethics Requirement",
}

_CREDIT_RE = re.compile(r"(\d+)\s*(?:credit|hour|hr)", re.IGNORECASE)
_SHORTHAND_RE = re.compile(
    r"\bany\s+(hum|ss|humanities|social\s*science)\s*(\d+)", re.IGNORECASE
)


@dataclass
class GenEdPass:
    requirements: Dict[str, GenEdRequirement] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


def normalize_gen_ed_type(text: str) -> str:
    normalized = re.sub(r"\s+", "_", text.lower().strip())
    return {
        "hum": "humanities",
        "ss": "social_science",
        "socialscience": "social_science",
    }.get(normalized, normalized)


def normalize_gen_ed_name(text: str) -> str:
    return _DISPLAY_NAMES.get(text.lower(), text)


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)


def extract_context(content: str, match: re.Match[str], size: int = CONTEXT_SIZE) -> str:
    start = max(0, match.start() - size)
    end = min(len(content), match.end() + size)
    return content[start:end]


def extract_gen_ed_area(content: str, area: GenEdArea) -> Optional[GenEdRequirement]:
    """Return the requirement for one taxonomy area, or ``None`` if absent."""
    for keyword in area.keywords:
        match = _keyword_pattern(keyword).search(content)
        if not match:
            continue

        context = extract_context(content, match)
        credit_match = _CREDIT_RE.search(context)
        credits = int(credit_match.group(1)) if credit_match else area.expected_credits[0]

        codes = [c for c in extract_course_codes(context) if course_prefix(c) in area.prefixes]

        if "any " in context.lower():
            rule = "any_from_category"
        elif len(codes) > 1:
            rule = "choose_from_list"
        elif len(codes) == 1:
            rule = "required"
        else:
            rule = "flexible"

        return GenEdRequirement(
            name=normalize_gen_ed_name(match.group(0)),
            credits_required=credits,
            selection_rule=rule,
            course_codes=codes,
            source_text=" ".join(context.split()),
        )
    return None


def extract_shorthand_gen_ed(content: str) -> Dict[str, GenEdRequirement]:
    """Synthesize requirements from ``Any HUM 6`` / ``Any SS 9`` shorthand."""
    found: Dict[str, GenEdRequirement] = {}
    for match in _SHORTHAND_RE.finditer(content):
        gen_ed_type = normalize_gen_ed_type(match.group(1))
        if gen_ed_type in found:
            continue
        found[gen_ed_type] = GenEdRequirement(
            name=f"Any {gen_ed_type.upper()}",
            credits_required=int(match.group(2)),
            selection_rule="any_from_category",
            constraints={"category_filter": gen_ed_type, "minimum_level": "1000"},
            source_text=match.group(0),
        )
    return found


def check_completeness(requirements: Dict[str, GenEdRequirement]) -> List[str]:
    warnings: List[str] = []
    if "humanities" not in requirements and "social_science" not in requirements:
        warnings.append(
            "No general education requirements detected - "
            "this may indicate incomplete parsing"
        )
    for gen_ed_type, requirement in requirements.items():
        if requirement.credits_required is not None and requirement.credits_required > MAX_PLAUSIBLE_CREDITS:
            warnings.append(
                f"{gen_ed_type} has unusually high credit requirement: "
                f"{requirement.credits_required}"
            )
    return warnings


def extract_gen_ed_requirements(content: str) -> GenEdPass:
    result = GenEdPass()

    for gen_ed_type, area in GEN_ED_TAXONOMY.items():
        requirement = extract_gen_ed_area(content, area)
        if requirement is not None:
            if requirement.selection_rule == "any_from_category":
                requirement.constraints = {"category_filter": gen_ed_type}
            result.requirements[gen_ed_type] = requirement

    for gen_ed_type, requirement in extract_shorthand_gen_ed(content).items():
        result.requirements.setdefault(gen_ed_type, requirement)

    result.warnings = check_completeness(result.requirements)
    return result
