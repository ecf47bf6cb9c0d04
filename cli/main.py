"""Catalog ingest CLI, the entry point for all pipeline operations.

Usage:
    python cli/main.py --help

Command groups:
    db        database setup
    courses   seed / inspect the course catalog
    discover  list programs from the catalog index
    validate  score a single page
    run       ingest programs into the database
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from catalog_ingest.xxx
# import ...` works when the CLI is invoked as `python cli/main.py`.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import typer

from catalog_ingest.config import settings
from catalog_ingest.db import get_connection, init_db
from catalog_ingest.logging_utils import configure_logging
from cli.commands.courses import courses_app
from cli.commands.ingest import discover, run, validate

app = typer.Typer(
    name="catalog-ingest",
    help="Degree catalog ingestion CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    configure_logging("DEBUG" if verbose else None)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Courses / scraping
# ---------------------------------------------------------------------------
app.add_typer(courses_app, name="courses")
app.command("discover")(discover)
app.command("validate")(validate)
app.command("run")(run)


if __name__ == "__main__":
    app()
