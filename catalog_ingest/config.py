"""Centralised settings for the catalog ingestion pipeline.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_DEFAULT_SUFFIXES = "general,business-option,management,systems,design"


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("CATALOG_WORKSPACE", Path.home() / ".catalog_ingest")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "catalog.db"

    @property
    def log_dir(self) -> Path:
        return self.workspace_dir / "logs"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Catalog site
    # ------------------------------------------------------------------
    catalog_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "CATALOG_BASE_URL", "https://catalog.gatech.edu"
        ).rstrip("/")
    )
    concentration_suffixes: list[str] = field(
        default_factory=lambda: _split_csv(
            os.environ.get("CONCENTRATION_SUFFIXES", _DEFAULT_SUFFIXES)
        )
    )

    # ------------------------------------------------------------------
    # Scraper
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "10.0"))
    )
    rate_limit_delay: float = field(
        default_factory=lambda: float(os.environ.get("RATE_LIMIT_DELAY", "2.0"))
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "SCRAPER_USER_AGENT",
            "Mozilla/5.0 (compatible; CatalogIngest-Bot/1.0)",
        )
    )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    session_flush_interval: int = field(
        default_factory=lambda: int(os.environ.get("SESSION_FLUSH_INTERVAL", "10"))
    )
    min_course_count: int = field(
        default_factory=lambda: int(os.environ.get("MIN_COURSE_COUNT", "5"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper()
    )


# Module-level singleton; import this everywhere:
#   from catalog_ingest.config import settings
settings = Settings()
