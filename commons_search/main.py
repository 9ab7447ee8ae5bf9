"""FastAPI application exposing Commons image search over HTTP."""

import base64
import logging
from typing import Annotated, Literal

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import Response

from commons_search.config import get_settings
from commons_search.dependencies import get_composite_builder, get_search_service
from commons_search.exceptions import ConfigurationError, NetworkError, SourceApiError
from commons_search.models import SearchParams, SearchResultPage
from commons_search.services import ImageSearchService
from commons_search.thumbnails import ThumbnailCompositeBuilder
from commons_search.utils.logging import setup_logging

logger = logging.getLogger(__name__)

settings = get_settings()
setup_logging(level=settings.log_level, json_format=settings.log_json, log_file=settings.log_file)

app = FastAPI(
    title=settings.app_title,
    version=settings.app_version,
    description="Wikimedia Commons image search with thumbnail composites",
)


def search_service() -> ImageSearchService:
    try:
        return get_search_service()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        raise HTTPException(status_code=500, detail=f"Configuration error: {e}") from e


def composite_builder() -> ThumbnailCompositeBuilder:
    return get_composite_builder()


def search_params(
    query: Annotated[str, Query(min_length=1, max_length=200, description="Search query")],
    limit: Annotated[int, Query(ge=1, le=50, description="Number of results")] = 9,
    offset: Annotated[int, Query(ge=0, description="Start offset")] = 0,
    license: Annotated[
        Literal["all", "no_restrictions"], Query(description="License filter")
    ] = "all",
) -> SearchParams:
    return SearchParams(query=query, limit=limit, offset=offset, license=license)


async def _run_search(service: ImageSearchService, params: SearchParams) -> SearchResultPage:
    try:
        return await service.search(params)
    except NetworkError as e:
        logger.error(f"Network error: {e}")
        raise HTTPException(status_code=504, detail=str(e)) from e
    except SourceApiError as e:
        logger.error(f"Commons API error {e.status_code}: {e.message}")
        raise HTTPException(status_code=502, detail=str(e)) from e


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "commons-image-search",
        "version": settings.app_version,
    }


@app.get("/api/search")
async def search(
    params: Annotated[SearchParams, Depends(search_params)],
    service: Annotated[ImageSearchService, Depends(search_service)],
):
    """Search Commons and return one normalized page of image records."""
    page = await _run_search(service, params)
    return page.to_output()


@app.get("/api/search/composite")
async def search_composite(
    params: Annotated[SearchParams, Depends(search_params)],
    service: Annotated[ImageSearchService, Depends(search_service)],
    composer: Annotated[ThumbnailCompositeBuilder, Depends(composite_builder)],
):
    """Search Commons and return the labeled thumbnail grid as a JPEG."""
    page = await _run_search(service, params)
    composite = await composer.build(page.images)
    if not composite:
        raise HTTPException(status_code=404, detail="No thumbnails available for this search")
    return Response(content=base64.b64decode(composite), media_type="image/jpeg")
