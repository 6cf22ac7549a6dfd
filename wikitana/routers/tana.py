import logging

import httpx
from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from wikitana.models.tana_request import TanaRequest
from wikitana.services.pipeline import (
    AmbiguousSeedError,
    FeaturedArticleError,
    SeedNotFoundError,
    build,
)

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post(
    "/tana",
    summary="Crawl a Wikipedia article and convert it to a Tana Intermediate File",
    description=(
        "Starting from *title* (or the featured article of *date* when no title "
        "is given), follows article links up to `max_depth` levels deep and "
        "collects up to `max_size` pages.  Returns the pages as a "
        "`TanaIntermediateFile V0.1` document."
    ),
)
@limiter.limit("5/minute")
async def tana_endpoint(request: Request, body: TanaRequest) -> dict:
    logger.info(
        "Tana request received",
        extra={"title": body.title, "max_depth": body.max_depth, "max_size": body.max_size},
    )

    try:
        _, document = await build(
            body.title,
            max_depth=body.max_depth,
            max_size=body.max_size,
            language=body.language,
            day=body.date,
        )
    except (SeedNotFoundError, FeaturedArticleError) as exc:
        logger.warning("Seed lookup failed: %s", exc)
        raise HTTPException(status_code=404, detail=str(exc))
    except AmbiguousSeedError as exc:
        logger.warning("Ambiguous seed: %s", exc)
        raise HTTPException(status_code=409, detail=str(exc))
    except httpx.TimeoutException:
        logger.error("Timeout talking to Wikipedia for %r", body.title)
        raise HTTPException(status_code=504, detail="Wikipedia timed out.")
    except (httpx.HTTPError, RuntimeError, ValueError) as exc:
        logger.error("Error building Tana file for %r: %s", body.title, exc)
        raise HTTPException(status_code=502, detail=str(exc))

    return document.to_dict()
