"""Wikipedia access through the MediaWiki action API and the Wikimedia feed API."""

import logging
from datetime import date as Date
from typing import List, Optional
from urllib.parse import unquote, urlparse

import httpx

from wikitana.models.page import Page
from wikitana.services.parser import parse_page

logger = logging.getLogger(__name__)

TIMEOUT = 15  # seconds
USER_AGENT = "wikitana/1.0 (https://github.com/wikitana/wikitana; Wikipedia to Tana converter)"

_API_URL = "https://{language}.wikipedia.org/w/api.php"
_FEATURED_URL = "https://{language}.wikipedia.org/api/rest_v1/feed/featured/{day:%Y/%m/%d}"

# API error codes that mean "there is no such page"
_NOT_FOUND_CODES = {"missingtitle", "invalidtitle", "nosuchpageid"}


class WikipediaError(RuntimeError):
    """The MediaWiki API answered with an error other than a missing page."""


def normalize_title(value: str) -> str:
    """Accept a title, a slug (``Ada_Lovelace``) or an article URL and return the title."""
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme in ("http", "https") and "/wiki/" in parsed.path:
        value = unquote(parsed.path.split("/wiki/", 1)[1])
    return value.replace("_", " ").strip()


async def _get_json(url: str, params: Optional[dict] = None) -> dict:
    """GET *url* and decode the JSON body.

    Raises:
        httpx.HTTPError: on network or HTTP errors.
        WikipediaError: if the body is not JSON.
    """
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    async with httpx.AsyncClient(timeout=TIMEOUT, follow_redirects=True, headers=headers) as client:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
        try:
            return resp.json()
        except ValueError as exc:
            raise WikipediaError(f"Unexpected non-JSON response from {url}") from exc


class WikipediaSource:
    """Page source resolving titles to parsed Wikipedia articles."""

    async def resolve(self, title: str, language: str = "en") -> List[Page]:
        """Return the article(s) for *title*; an empty list when it does not exist.

        Redirects are followed, so several titles can resolve to the same page.
        """
        title = normalize_title(title)
        if not title:
            return []

        params = {
            "action": "parse",
            "page": title,
            "prop": "text",
            "redirects": 1,
            "disableeditsection": 1,
            "disabletoc": 1,
            "format": "json",
            "formatversion": 2,
        }
        logger.debug("Fetching %r from %s.wikipedia.org", title, language)
        data = await _get_json(_API_URL.format(language=language), params=params)

        error = data.get("error")
        if error:
            if error.get("code") in _NOT_FOUND_CODES:
                return []
            raise WikipediaError(f"{error.get('code')}: {error.get('info', 'unknown error')}")

        parsed = data.get("parse") or {}
        if "pageid" not in parsed:
            return []

        page = parse_page(
            page_id=int(parsed["pageid"]),
            title=parsed.get("title", title),
            html=parsed.get("text", ""),
            language=language,
        )
        return [page]


async def featured(language: str = "en", day: Optional[Date] = None) -> Optional[str]:
    """Return the title of the featured article of *day* (default: today).

    Returns *None* when the feed has no featured article for that day.
    """
    day = day or Date.today()
    url = _FEATURED_URL.format(language=language, day=day)
    data = await _get_json(url)

    tfa = data.get("tfa") or {}
    title = tfa.get("normalizedtitle") or tfa.get("title")
    return normalize_title(title) if title else None
