"""End-to-end generation: seed lookup, crawl and conversion."""

import logging
from datetime import date as Date
from typing import Optional, Tuple

from wikitana.models.document import Document
from wikitana.models.page import Page
from wikitana.services.converter import convert
from wikitana.services.crawler import CrawlProgress, PageSource, crawl
from wikitana.services.wikipedia import WikipediaSource, featured

logger = logging.getLogger(__name__)


class SeedNotFoundError(LookupError):
    pass


class AmbiguousSeedError(LookupError):
    pass


class FeaturedArticleError(LookupError):
    pass


async def resolve_title(
    title: Optional[str],
    language: str = "en",
    day: Optional[Date] = None,
) -> str:
    """Return *title*, or the featured article title when *title* is empty."""
    if title and title.strip():
        return title.strip()

    featured_title = await featured(language=language, day=day)
    if not featured_title:
        raise FeaturedArticleError("Could not get today's featured article")
    logger.info("Using featured article %r", featured_title)
    return featured_title


async def load_seed(source: PageSource, title: str, language: str = "en") -> Page:
    """Resolve the seed *title* to exactly one page.

    Unlike frontier lookups, a missing or ambiguous seed is fatal.
    """
    results = await source.resolve(title, language)
    if not results:
        raise SeedNotFoundError(f"Couldn't find page {title!r}")
    if len(results) > 1:
        raise AmbiguousSeedError(f"Found {len(results)} pages for {title!r}")
    return results[0]


async def build(
    title: Optional[str],
    max_depth: int = 1,
    max_size: int = 1000,
    language: str = "en",
    day: Optional[Date] = None,
    source: Optional[PageSource] = None,
    progress: Optional[CrawlProgress] = None,
    concurrency: int = 1,
) -> Tuple[Page, Document]:
    """Crawl from *title* (or the featured article) and convert the result."""
    source = source or WikipediaSource()
    title = await resolve_title(title, language, day)
    seed = await load_seed(source, title, language)
    logger.info("Crawling %r (%s)", seed.title, seed.page_id)

    result = await crawl(
        seed,
        max_depth=max_depth,
        max_size=max_size,
        source=source,
        language=language,
        progress=progress,
        concurrency=concurrency,
    )
    logger.info("Converting %d pages to Tana nodes", len(result.pages))
    document = convert(result.pages, result.references, language=language)
    return seed, document
