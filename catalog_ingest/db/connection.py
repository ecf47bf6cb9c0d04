"""SQLite connection factory.

Usage::

    from catalog_ingest.db.connection import get_connection

    conn = get_connection()
    try:
        conn.execute("SELECT 1")
    finally:
        conn.close()
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional, Union

from catalog_ingest.config import settings


def get_connection(db_path: Optional[Union[Path, str]] = None) -> sqlite3.Connection:
    """Open and configure a SQLite connection.

    Every new connection gets ``PRAGMA foreign_keys = ON`` and the WAL
    journal mode, and ``row_factory`` set to :class:`sqlite3.Row` so columns
    can be accessed by name.

    Args:
        db_path: Override the DB path.  Defaults to ``settings.db_path``.
            Pass ``":memory:"`` for a throwaway database.
    """
    path = db_path or settings.db_path

    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")

    return conn
