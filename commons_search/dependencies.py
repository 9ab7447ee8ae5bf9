"""Component factories shared by the FastAPI app and the MCP server."""

from commons_search.commons_client import CommonsClient
from commons_search.config import Settings, get_settings
from commons_search.exceptions import ConfigurationError
from commons_search.normalize import ResponseNormalizer
from commons_search.services import ImageSearchService
from commons_search.thumbnails import (
    GridCompositor,
    ThumbnailCompositeBuilder,
    ThumbnailConfig,
    ThumbnailFetcher,
)


def get_commons_client(settings: Settings | None = None) -> CommonsClient:
    """Get a Commons client configured from settings."""
    settings = settings or get_settings()
    if not settings.commons_api_base.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"COMMONS_API_BASE must be an http(s) URL (got: {settings.commons_api_base!r})"
        )
    return CommonsClient(
        base_url=settings.commons_api_base,
        user_agent=settings.user_agent,
        timeout=settings.request_timeout,
        thumbnail_size=settings.thumbnail_size,
        max_results_limit=settings.max_results_limit,
        lookahead_count=settings.lookahead_count,
    )


def get_search_service(settings: Settings | None = None) -> ImageSearchService:
    settings = settings or get_settings()
    return ImageSearchService(
        client=get_commons_client(settings),
        normalizer=ResponseNormalizer(
            text_limit=settings.text_field_limit,
            license_name_limit=settings.license_name_limit,
        ),
    )


def get_composite_builder(settings: Settings | None = None) -> ThumbnailCompositeBuilder:
    settings = settings or get_settings()
    config = ThumbnailConfig.from_settings(settings)
    return ThumbnailCompositeBuilder(
        fetcher=ThumbnailFetcher(config),
        compositor=GridCompositor(config),
        max_items=config.max_items,
    )
