"""Command-line entry point: ``wikitana [TITLE...]``."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskProgressColumn, TextColumn

from wikitana.logging_config import configure_logging
from wikitana.models.document import Document
from wikitana.services.crawler import CrawlProgress
from wikitana.services.pipeline import (
    AmbiguousSeedError,
    FeaturedArticleError,
    SeedNotFoundError,
    build,
)
from wikitana.services.wikipedia import WikipediaError

logger = logging.getLogger(__name__)

app = typer.Typer(name="wikitana", add_completion=False)

_FATAL_ERRORS = (
    SeedNotFoundError,
    AmbiguousSeedError,
    FeaturedArticleError,
    WikipediaError,
    httpx.HTTPError,
)


def _parse_date(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid date {value!r}, expected YYYY-MM-DD", param_hint="--date")


@app.command()
def main(
    title: list[str] = typer.Argument(
        None, help="Title or slug of a Wikipedia page (default: the featured article)"
    ),
    file: Path | None = typer.Option(None, "-f", "--file", help="Write the JSON data to this file"),
    depth: int = typer.Option(1, "-d", "--depth", min=0, help="Maximum crawl depth"),
    size: int = typer.Option(1000, "-s", "--size", min=1, help="Maximum number of pages to crawl"),
    language: str = typer.Option("en", "-l", "--language", help="Wikipedia language"),
    day: str | None = typer.Option(None, "--date", help="Date of the featured article (YYYY-MM-DD)"),
    concurrency: int = typer.Option(1, "-c", "--concurrency", min=1, help="Parallel page lookups"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log crawl details to stderr"),
) -> None:
    """Crawl a Wikipedia article and its links into a Tana Intermediate File."""
    configure_logging("DEBUG" if verbose else "WARNING")
    featured_day = _parse_date(day)
    joined_title = " ".join(title or []).strip() or None

    console = Console(stderr=True)
    try:
        seed_title, document = asyncio.run(
            _run(console, joined_title, depth, size, language, featured_day, concurrency)
        )
    except _FATAL_ERRORS as exc:
        logger.debug("Generation failed", exc_info=True)
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)

    console.print(
        f"Converted {document.summary.top_level_nodes} pages from {seed_title!r} "
        f"into {document.summary.total_nodes} nodes"
    )
    _write_output(console, document, file)


async def _run(
    console: Console,
    title: str | None,
    max_depth: int,
    max_size: int,
    language: str,
    day: date | None,
    concurrency: int,
) -> tuple[str, Document]:
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        size_task = progress.add_task("crawled pages", total=max_size)
        depth_task = progress.add_task("crawl depth", total=max_depth)

        def _update(crawl_progress: CrawlProgress) -> None:
            progress.update(size_task, completed=crawl_progress.pages)
            progress.update(depth_task, completed=crawl_progress.levels)

        crawl_progress = CrawlProgress(max_size=max_size, max_depth=max_depth, listener=_update)
        seed, document = await build(
            title,
            max_depth=max_depth,
            max_size=max_size,
            language=language,
            day=day,
            progress=crawl_progress,
            concurrency=concurrency,
        )
    return seed.title, document


def _write_output(console: Console, document: Document, file: Path | None) -> None:
    if file is None:
        typer.echo(document.to_json())
        return

    file.parent.mkdir(parents=True, exist_ok=True)
    file.write_text(document.to_json(indent=2), encoding="utf-8")
    console.print(f"Wrote Tana file to {file}")


if __name__ == "__main__":
    app()
