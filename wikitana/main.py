import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from wikitana.logging_config import configure_logging
from wikitana.models.document import TANA_FORMAT_VERSION
from wikitana.routers.tana import limiter, router as tana_router

VERSION = "1.0.0"

configure_logging(os.environ.get("WIKITANA_LOG_LEVEL", "INFO"))

logger = logging.getLogger(__name__)

app = FastAPI(
    title="wikitana – Wikipedia to Tana API",
    description="Crawls a Wikipedia article and its links and returns a Tana Intermediate File.",
    version=VERSION,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while generating %s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Could not generate the Tana file."})


app.include_router(tana_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    """Report the service version and the Tana file format it produces."""
    return {"service": "wikitana", "version": VERSION, "format": TANA_FORMAT_VERSION}
