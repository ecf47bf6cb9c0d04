"""Scraping commands: discover programs, check a page, run the pipeline."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer

from catalog_ingest.pipeline.runner import run_ingest
from catalog_ingest.scraper.detector import title_case_slug, program_slug
from catalog_ingest.scraper.discovery import discover_programs
from catalog_ingest.scraper.fetcher import CatalogRenderer, FetchError
from catalog_ingest.scraper.models import Program
from catalog_ingest.scraper.validator import validate_content


async def _discover() -> List[Program]:
    async with CatalogRenderer() as renderer:
        return await discover_programs(renderer)


def _load_programs(path: Path) -> List[Program]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return [Program(name=item["name"], url=item["url"], type=item.get("type")) for item in data]


def _programs_from_urls(urls: List[str], names: List[str]) -> List[Program]:
    programs = []
    for index, url in enumerate(urls):
        if index < len(names):
            name = names[index]
        else:
            slug = program_slug(url)
            name = f"{title_case_slug(slug)} - BS" if slug else url
        programs.append(Program(name=name, url=url))
    return programs


def discover(
    as_json: bool = typer.Option(False, "--json", help="Print the programs as JSON."),
) -> None:
    """List the bachelor's programs found on the catalog index."""
    programs = asyncio.run(_discover())
    if as_json:
        typer.echo(json.dumps([{"name": p.name, "url": p.url, "type": p.type} for p in programs], indent=2))
        return
    if not programs:
        typer.echo("[discover] No programs found.")
        raise typer.Exit(1)
    for program in programs:
        typer.echo(f"  {program.name:<50}  {program.url}")
    typer.echo(f"[discover] {len(programs)} programs")


def validate(
    url: str = typer.Argument(..., help="Catalog page to fetch and score."),
) -> None:
    """Fetch one page and show how it scores as curriculum content."""

    async def _fetch() -> str:
        async with CatalogRenderer() as renderer:
            return (await renderer.fetch(url)).html

    typer.echo(f"[validate] Fetching {url!r} ...")
    try:
        html = asyncio.run(_fetch())
    except FetchError as exc:
        typer.echo(f"[validate] ERROR: {exc}", err=True)
        raise typer.Exit(1)

    result = validate_content(html)
    typer.echo(f"[validate] Valid    : {result.is_valid}")
    typer.echo(f"[validate] Type     : {result.content_type}")
    typer.echo(f"[validate] Courses  : {result.course_count}")
    typer.echo(f"[validate] Quality  : {result.quality_score}/100")
    if result.recovery_strategy:
        typer.echo(f"[validate] Recovery : {result.recovery_strategy}")
    for pattern in result.quality_checks.suspicious_patterns:
        typer.echo(f"[validate] Warning  : {pattern}")


def run(
    urls: List[str] = typer.Option([], "--url", help="Program URL (repeatable)."),
    names: List[str] = typer.Option([], "--name", help="Display name for the matching --url."),
    programs_file: Optional[Path] = typer.Option(
        None, "--programs", exists=True, dir_okay=False, help="JSON list of {name, url, type}."
    ),
    use_discovery: bool = typer.Option(False, "--discover", help="Scrape every program on the catalog index."),
    delay: Optional[float] = typer.Option(None, "--delay", help="Seconds between programs."),
) -> None:
    """Run the ingest pipeline and print the final summary."""
    programs: List[Program] = []
    if programs_file is not None:
        programs.extend(_load_programs(programs_file))
    programs.extend(_programs_from_urls(urls, names))
    if use_discovery:
        programs.extend(asyncio.run(_discover()))

    if not programs:
        typer.echo("[run] No programs given. Use --url, --programs or --discover.", err=True)
        raise typer.Exit(1)

    options = {"rate_limit_delay": delay} if delay is not None else {}
    typer.echo(f"[run] Processing {len(programs)} programs ...")
    report = asyncio.run(run_ingest(programs, **options))

    typer.echo(report.summary)
    if report.stats.successful_programs == 0:
        raise typer.Exit(1)
