"""Bounded breadth-first crawl over Wikipedia article links.

The crawl proceeds in *levels*: every title discovered while resolving one
level forms the frontier of the next.  It stops when the frontier is empty,
when ``max_depth`` levels have been completed or when ``max_size`` pages have
been collected, whichever comes first.  A level may be cut short by the size
bound.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Protocol, Set

import httpx

from wikitana.models.page import Page
from wikitana.services.links import parse_page_links

logger = logging.getLogger(__name__)


class PageSource(Protocol):
    async def resolve(self, title: str, language: str = "en") -> List[Page]: ...


class CrawlResult(NamedTuple):
    pages: Dict[int, Page]
    references: Dict[str, Optional[Page]]
    depth: int


@dataclass
class CrawlProgress:
    """Observable crawl counters; never used for crawl decisions."""

    max_size: int
    max_depth: int
    pages: int = 0
    levels: int = 0
    listener: Optional[Callable[["CrawlProgress"], None]] = None

    def _notify(self) -> None:
        if self.listener is not None:
            self.listener(self)

    def set_pages(self, count: int) -> None:
        count = min(count, self.max_size)
        if count > self.pages:
            self.pages = count
            self._notify()

    def level_completed(self) -> None:
        if self.levels < self.max_depth:
            self.levels += 1
            self._notify()

    @property
    def size_exhausted(self) -> bool:
        return self.pages >= self.max_size

    @property
    def depth_exhausted(self) -> bool:
        return self.levels >= self.max_depth


async def load(source: PageSource, title: str, language: str = "en") -> Optional[Page]:
    """Resolve a frontier *title*, degrading every failure to *None*."""
    try:
        results = await source.resolve(title, language)
    except (ValueError, httpx.HTTPError, RuntimeError) as exc:
        logger.warning("Crawler: could not load %r – %s", title, exc)
        return None

    if not results:
        logger.warning("Crawler: no page found for %r", title)
        return None
    if len(results) > 1:
        logger.warning("Crawler: found %d pages for %r – skipping", len(results), title)
        return None
    return results[0]


class _Crawl:
    """Mutable state of one crawl run."""

    def __init__(
        self,
        seed: Page,
        max_size: int,
        source: PageSource,
        language: str,
        progress: Optional[CrawlProgress],
    ) -> None:
        self.pages: Dict[int, Page] = {seed.page_id: seed}
        self.references: Dict[str, Optional[Page]] = {seed.title: seed}
        self.max_size = max_size
        self.source = source
        self.language = language
        self.progress = progress
        self.lock = asyncio.Lock()

    @property
    def full(self) -> bool:
        return len(self.pages) >= self.max_size

    def _collect(self, title: str, page: Optional[Page], next_frontier: Set[str]) -> None:
        self.references[title] = page
        if page is None or page.page_id in self.pages:
            return

        self.pages[page.page_id] = page
        if self.progress is not None:
            self.progress.set_pages(len(self.pages))
        for ref in parse_page_links(page):
            if ref not in self.references:
                next_frontier.add(ref)

    async def run_level_sequential(self, frontier: Set[str]) -> Set[str]:
        next_frontier: Set[str] = set()
        for title in frontier:
            if self.full:
                break
            if title in self.references:
                continue

            page = await load(self.source, title, self.language)
            self._collect(title, page, next_frontier)
        return next_frontier

    async def run_level_concurrent(self, frontier: Set[str], concurrency: int) -> Set[str]:
        next_frontier: Set[str] = set()
        semaphore = asyncio.Semaphore(concurrency)

        async def _visit(title: str) -> None:
            async with semaphore:
                async with self.lock:
                    if self.full or title in self.references:
                        return
                page = await load(self.source, title, self.language)
                async with self.lock:
                    if title in self.references:
                        return
                    if self.full:
                        # Bound reached while this lookup was in flight
                        self.references[title] = None
                        return
                    self._collect(title, page, next_frontier)

        await asyncio.gather(*(_visit(title) for title in frontier))
        return next_frontier


async def crawl(
    seed: Page,
    max_depth: int,
    max_size: int,
    source: PageSource,
    language: str = "en",
    progress: Optional[CrawlProgress] = None,
    concurrency: int = 1,
) -> CrawlResult:
    """Collect the pages reachable from *seed* within the depth and size bounds.

    ``max_depth = 0`` or ``max_size <= 1`` returns the seed alone.  Every title
    that was looked up is recorded once in ``references``, mapped to its page
    or to *None* when it could not be resolved; titles beyond the last explored
    level are never looked up.

    With ``concurrency > 1`` the titles of one level are resolved concurrently;
    the next level only starts once all of them have settled.
    """
    if max_depth < 0 or max_size < 0:
        raise ValueError("max_depth and max_size must be non-negative")

    state = _Crawl(seed, max_size, source, language, progress)
    if progress is not None:
        progress.set_pages(len(state.pages))

    depth = 0
    frontier = parse_page_links(seed)

    while frontier and depth < max_depth and not state.full:
        if concurrency > 1:
            next_frontier = await state.run_level_concurrent(frontier, concurrency)
        else:
            next_frontier = await state.run_level_sequential(frontier)

        if state.full:
            break

        depth += 1
        frontier = next_frontier
        logger.info(
            "Crawler: level %d complete – %d pages, %d next", depth, len(state.pages), len(frontier)
        )
        if progress is not None:
            progress.level_completed()

    return CrawlResult(pages=state.pages, references=state.references, depth=depth)
