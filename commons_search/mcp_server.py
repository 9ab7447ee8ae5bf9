"""
MCP server exposing Wikimedia Commons image search as a tool.

Returns a YAML listing of the results and, optionally, a labeled thumbnail
composite so a model can compare candidates visually.
"""

import logging
import sys
from typing import Annotated, Literal

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ImageContent, TextContent
from pydantic import Field

from commons_search.config import Settings, get_settings
from commons_search.dependencies import get_composite_builder, get_search_service
from commons_search.exceptions import CommonsAppError
from commons_search.formatting import NO_RESULTS_MESSAGE, build_text_response
from commons_search.models import SearchParams
from commons_search.services import ImageSearchService
from commons_search.thumbnails import ThumbnailCompositeBuilder
from commons_search.utils.logging import setup_logging

logger = logging.getLogger(__name__)

mcp = FastMCP("wikimedia-image-search")


async def handle_search(
    params: SearchParams,
    service: ImageSearchService,
    composer: ThumbnailCompositeBuilder,
    settings: Settings,
) -> list[TextContent | ImageContent]:
    """
    Run a search and assemble the tool response content blocks.

    Raises:
        ToolError: If the search fails
    """
    try:
        page = await service.search(params)
    except CommonsAppError as e:
        logger.error(f"Search failed for query '{params.query}': {e}")
        raise ToolError(f"Error searching Wikimedia Commons: {e}") from e

    if not page.images:
        return [TextContent(type="text", text=NO_RESULTS_MESSAGE)]

    text, truncated = build_text_response(
        page,
        thumbnail_size=settings.thumbnail_size,
        character_limit=settings.character_limit,
    )
    content: list[TextContent | ImageContent] = [TextContent(type="text", text=text)]
    if truncated:
        return content

    if params.include_thumbnails:
        composite = await composer.build(page.images)
        if composite:
            content.append(ImageContent(type="image", data=composite, mimeType="image/jpeg"))

    return content


@mcp.tool(
    name="wikimedia_search_images",
    description=(
        "Search for images on Wikimedia Commons with metadata including download URLs and "
        "optional thumbnail composite image for visual comparison. Use results to e.g. fetch "
        "full images that are relevant for your task."
    ),
)
async def wikimedia_search_images(
    query: Annotated[
        str,
        Field(
            min_length=1,
            max_length=200,
            description=(
                "Search query. Note: Wikimedia uses strict keyword matching, not semantic "
                "search. Use common, fewer terms for more results."
            ),
        ),
    ],
    limit: Annotated[
        int, Field(ge=1, le=50, description="Maximum number of results to return (1-50).")
    ] = 9,
    offset: Annotated[
        int, Field(ge=0, description="Number of results to skip for pagination")
    ] = 0,
    license: Annotated[
        Literal["all", "no_restrictions"],
        Field(
            description=(
                "Filter images by license type: 'no_restrictions' for CC0/public domain only, "
                "'all' for any license"
            )
        ),
    ] = "all",
    include_thumbnails: Annotated[
        bool,
        Field(
            description=(
                "If true, returns an additional composite image so you can visually view and "
                "compare the results. Set to false to save processing time or if you're unable "
                "to view images."
            )
        ),
    ] = True,
):
    params = SearchParams(
        query=query,
        limit=limit,
        offset=offset,
        license=license,
        include_thumbnails=include_thumbnails,
    )
    settings = get_settings()
    return await handle_search(
        params,
        service=get_search_service(settings),
        composer=get_composite_builder(settings),
        settings=settings,
    )


def main() -> None:
    """Run the MCP server over stdio."""
    settings = get_settings()
    # stdout carries the protocol
    setup_logging(
        level=settings.log_level,
        json_format=settings.log_json,
        log_file=settings.log_file,
        stream=sys.stderr,
    )
    logger.info("Starting wikimedia-image-search MCP server")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
