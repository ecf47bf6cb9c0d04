"""Database layer package.

Public re-exports so callers can write::

    from catalog_ingest.db import get_connection, init_db
    from catalog_ingest.db import programs
"""

from catalog_ingest.db.connection import get_connection
from catalog_ingest.db.migrations import init_db
from catalog_ingest.db import courses, programs, sessions

__all__ = ["get_connection", "init_db", "courses", "programs", "sessions"]
