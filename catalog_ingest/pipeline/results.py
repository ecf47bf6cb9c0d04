"""Per-program outcomes and running run statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

# Per-program states, in the order a program moves through them.
PENDING = "pending"
DETECTING = "detecting"
PARSING = "parsing"
MAPPING = "mapping"
UPDATING = "updating"

# Terminal statuses.
SUCCESS = "success"
PARTIAL = "partial"
FAILED = "failed"
CRITICAL_ERROR = "critical_error"


@dataclass
class ProcessingResult:
    program_name: str
    status: str
    pattern: Optional[str] = None
    courses_found: Optional[int] = None
    courses_mapped: Optional[int] = None
    unmapped_courses: List[str] = field(default_factory=list)
    processing_time_ms: Optional[int] = None
    error: Optional[str] = None
    warning: Optional[str] = None
    details: Optional[str] = None
    concentrations: List[str] = field(default_factory=list)


@dataclass
class ScrapingStats:
    total_programs: int = 0
    successful_programs: int = 0
    failed_programs: int = 0
    partial_programs: int = 0

    def record(self, status: str) -> None:
        """Count one finished program; ``critical_error`` counts as failed."""
        if status == SUCCESS:
            self.successful_programs += 1
        elif status == PARTIAL:
            self.partial_programs += 1
        else:
            self.failed_programs += 1
