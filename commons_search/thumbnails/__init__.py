"""Thumbnail fetching and grid composites."""

from .composite import CompositeLayout, GridCompositor, ThumbnailCompositeBuilder
from .fetcher import (
    FetchedThumbnail,
    ThumbnailConfig,
    ThumbnailFetcher,
    ThumbnailOutcome,
    flatten_alpha,
    resize_url,
    thumbnail_width,
)

__all__ = [
    "CompositeLayout",
    "FetchedThumbnail",
    "GridCompositor",
    "ThumbnailCompositeBuilder",
    "ThumbnailConfig",
    "ThumbnailFetcher",
    "ThumbnailOutcome",
    "flatten_alpha",
    "resize_url",
    "thumbnail_width",
]
