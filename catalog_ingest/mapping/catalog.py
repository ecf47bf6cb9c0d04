"""Read-only course-code lookup table.

Built once before any program is processed and shared by reference with the
mapper.  The underlying mapping is a :class:`types.MappingProxyType`, so the
table cannot be mutated after construction.
"""

from __future__ import annotations

import logging
import sqlite3
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional

from catalog_ingest.mapping.models import CourseInfo

logger = logging.getLogger(__name__)


class CourseCatalog(Mapping[str, CourseInfo]):
    def __init__(self, entries: Optional[Mapping[str, CourseInfo]] = None) -> None:
        self._entries: Mapping[str, CourseInfo] = MappingProxyType(dict(entries or {}))

    @classmethod
    def from_connection(cls, conn: sqlite3.Connection) -> "CourseCatalog":
        """Load the catalog from ``course_mapping_cache`` and ``courses``.

        Rows in ``courses`` win over cache rows for the same code.
        """
        entries: Dict[str, CourseInfo] = {}
        for row in conn.execute(
            "SELECT course_code, course_id, title, credits FROM course_mapping_cache"
        ):
            entries[row["course_code"]] = CourseInfo(
                id=row["course_id"], title=row["title"], credits=row["credits"]
            )
        for row in conn.execute("SELECT id, code, title, credits FROM courses"):
            entries[row["code"]] = CourseInfo(
                id=row["id"], title=row["title"], credits=row["credits"]
            )
        logger.info("Course catalog loaded with %d courses", len(entries))
        return cls(entries)

    def __getitem__(self, code: str) -> CourseInfo:
        return self._entries[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"CourseCatalog({len(self)} courses)"
