"""Fetch and resize per-record thumbnails concurrently."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Sequence

import httpx
from PIL import Image, ImageOps

from commons_search.aspect_ratio import round_half_up
from commons_search.config import Settings
from commons_search.exceptions import ThumbnailFetchError
from commons_search.models import ImageRecord

logger = logging.getLogger(__name__)

# Thumbnail URLs look like .../256px-filename.jpg; only the last path segment counts
_WIDTH_SEGMENT_RE = re.compile(r"/(\d+)px-(?=[^/]*$)")

_ALPHA_MODES = ("RGBA", "RGBa", "LA", "La", "PA", "P")


@dataclass(frozen=True)
class ThumbnailConfig:
    """Geometry and fetch limits shared by the fetcher and the compositor."""

    thumbnail_size: int = 256
    columns: int = 3
    spacing: int = 10
    label_offset: int = 5
    label_font_size: int = 20
    jpeg_quality: int = 90
    max_items: int = 15
    concurrency: int = 8
    timeout: float = 10.0
    user_agent: str = "commons-image-search/1.0.0"
    background: tuple[int, int, int] = (255, 255, 255)

    @classmethod
    def from_settings(cls, settings: Settings) -> ThumbnailConfig:
        return cls(
            thumbnail_size=settings.thumbnail_size,
            columns=settings.grid_columns,
            spacing=settings.grid_spacing,
            label_offset=settings.label_offset,
            label_font_size=settings.label_font_size,
            jpeg_quality=settings.jpeg_quality,
            max_items=settings.max_images_in_composite,
            concurrency=settings.fetch_concurrency,
            timeout=settings.thumbnail_timeout,
            user_agent=settings.user_agent,
        )


@dataclass
class FetchedThumbnail:
    """A decoded, padded thumbnail and its 0-based position in the retained set."""

    image: Image.Image
    position: int


@dataclass
class ThumbnailOutcome:
    """Result of one fetch task: either a thumbnail or an error description."""

    position: int
    thumbnail: FetchedThumbnail | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.thumbnail is not None


def thumbnail_width(width: int, height: int, size: int) -> int:
    """Requested width so that the larger source dimension maps to ``size``."""
    if height > width:
        return max(1, round_half_up(width * size / height))
    return size


def resize_url(url: str, new_width: int) -> str:
    """Swap the ``/<n>px-`` width segment of a thumbnail URL."""
    return _WIDTH_SEGMENT_RE.sub(f"/{new_width}px-", url, count=1)


def flatten_alpha(img: Image.Image, background: tuple[int, int, int]) -> Image.Image:
    """RGB copy of ``img`` with any transparency composited onto ``background``."""
    if img.mode not in _ALPHA_MODES:
        return img.convert("RGB")
    if img.mode == "La":
        img = img.convert("LA")
    img = img.convert("RGBA")
    flattened = Image.new("RGB", img.size, background)
    flattened.paste(img, mask=img.getchannel("A"))
    return flattened


def fit_thumbnail(data: bytes, size: int, background: tuple[int, int, int]) -> Image.Image:
    """Decode ``data`` and pad it into a ``size`` x ``size`` box, aspect preserved."""
    with Image.open(BytesIO(data)) as src:
        img = flatten_alpha(ImageOps.exif_transpose(src), background)
    return ImageOps.pad(img, (size, size), color=background)


class ThumbnailFetcher:
    """Fetches thumbnails for a list of records with per-item failure isolation."""

    def __init__(
        self,
        config: ThumbnailConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or ThumbnailConfig()
        self._transport = transport

    async def _download(self, client: httpx.AsyncClient, url: str, position: int) -> Image.Image:
        response = await client.get(url)
        if not response.is_success:
            raise ThumbnailFetchError(position, url, f"HTTP {response.status_code}")
        try:
            return await asyncio.to_thread(
                fit_thumbnail, response.content, self.config.thumbnail_size, self.config.background
            )
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise ThumbnailFetchError(position, url, f"decode failed: {e}") from e

    async def _fetch_one(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        record: ImageRecord,
        position: int,
    ) -> ThumbnailOutcome:
        size = self.config.thumbnail_size
        url = resize_url(record.url, thumbnail_width(record.width, record.height, size))
        try:
            # Deadline covers the whole download and decode, not just each read
            async with semaphore:
                try:
                    image = await asyncio.wait_for(
                        self._download(client, url, position), self.config.timeout
                    )
                except asyncio.TimeoutError as e:
                    raise ThumbnailFetchError(position, url, "timed out") from e
        except ThumbnailFetchError as e:
            logger.warning(str(e), extra={"position": position, "url": url})
            return ThumbnailOutcome(position=position, error=e.reason)
        except Exception as e:
            logger.warning(
                f"Thumbnail {position + 1} failed ({url}): {e!r}",
                extra={"position": position, "url": url},
            )
            return ThumbnailOutcome(position=position, error=repr(e))

        return ThumbnailOutcome(
            position=position, thumbnail=FetchedThumbnail(image=image, position=position)
        )

    async def fetch_all(
        self, records: Sequence[ImageRecord], cap: int | None = None
    ) -> list[ThumbnailOutcome]:
        """
        Fetch every retained record concurrently.

        Only the first ``cap`` records (default ``config.max_items``) are
        retained; the rest are never requested. Returns one outcome per
        retained record, in retained order.
        """
        limit = self.config.max_items if cap is None else cap
        retained = list(records[:limit])
        if not retained:
            return []

        semaphore = asyncio.Semaphore(self.config.concurrency)
        async with httpx.AsyncClient(
            timeout=self.config.timeout,
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            outcomes = await asyncio.gather(
                *[
                    self._fetch_one(client, semaphore, record, position)
                    for position, record in enumerate(retained)
                ]
            )

        failed = sum(1 for o in outcomes if not o.ok)
        if failed:
            logger.info(f"Fetched {len(outcomes) - failed}/{len(outcomes)} thumbnails")
        return list(outcomes)

    async def fetch_thumbnails(
        self, records: Sequence[ImageRecord], cap: int | None = None
    ) -> list[FetchedThumbnail]:
        """Successful thumbnails only, each tagged with its original position."""
        outcomes = await self.fetch_all(records, cap)
        return [o.thumbnail for o in outcomes if o.thumbnail is not None]
