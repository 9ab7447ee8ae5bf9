"""Lay fetched thumbnails into a labeled grid and encode it as one JPEG."""

from __future__ import annotations

import asyncio
import base64
import logging
import math
from dataclasses import dataclass
from io import BytesIO
from typing import Sequence

from PIL import Image, ImageDraw, ImageFont

from commons_search.models import ImageRecord
from commons_search.thumbnails.fetcher import FetchedThumbnail, ThumbnailConfig, ThumbnailFetcher

logger = logging.getLogger(__name__)

_FONT_CANDIDATES = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")


@dataclass(frozen=True)
class CompositeLayout:
    """Grid geometry for one composite."""

    columns: int
    cell: int
    spacing: int
    item_count: int

    @classmethod
    def for_items(cls, item_count: int, config: ThumbnailConfig) -> CompositeLayout:
        return cls(
            columns=config.columns,
            cell=config.thumbnail_size,
            spacing=config.spacing,
            item_count=item_count,
        )

    @property
    def rows(self) -> int:
        return math.ceil(self.item_count / self.columns)

    @property
    def canvas_size(self) -> tuple[int, int]:
        width = self.columns * self.cell + (self.columns + 1) * self.spacing
        height = self.rows * self.cell + (self.rows + 1) * self.spacing
        return width, height

    def cell_origin(self, position: int) -> tuple[int, int]:
        """(left, top) pixel of the cell at ``position``."""
        row, col = divmod(position, self.columns)
        left = col * self.cell + (col + 1) * self.spacing
        top = row * self.cell + (row + 1) * self.spacing
        return left, top


def load_label_font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    for name in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


class GridCompositor:
    """Renders thumbnails into a fixed-column grid with 1-based index labels."""

    def __init__(self, config: ThumbnailConfig | None = None):
        self.config = config or ThumbnailConfig()
        self._font = load_label_font(self.config.label_font_size)

    def render(self, thumbnails: Sequence[FetchedThumbnail], item_count: int) -> bytes:
        """
        Compose ``thumbnails`` into a JPEG.

        The canvas is sized from ``item_count`` (the number of items that were
        attempted) so a failed item leaves a blank cell at its position rather
        than shifting the others. Returns ``b""`` when there is nothing to draw.
        """
        if not thumbnails:
            return b""

        layout = CompositeLayout.for_items(item_count, self.config)
        canvas = Image.new("RGB", layout.canvas_size, self.config.background)
        draw = ImageDraw.Draw(canvas)
        offset = self.config.label_offset

        for thumb in thumbnails:
            left, top = layout.cell_origin(thumb.position)
            canvas.paste(thumb.image, (left, top))

        # Labels go on after all pastes so no thumbnail covers them
        for thumb in thumbnails:
            left, top = layout.cell_origin(thumb.position)
            draw.text(
                (left + offset, top + offset),
                str(thumb.position + 1),
                font=self._font,
                fill="white",
                stroke_width=2,
                stroke_fill="black",
            )

        buf = BytesIO()
        canvas.save(buf, format="JPEG", quality=self.config.jpeg_quality)
        return buf.getvalue()

    def composite(self, thumbnails: Sequence[FetchedThumbnail], item_count: int) -> str:
        """Base64 text of :meth:`render`, or ``""`` when empty."""
        data = self.render(thumbnails, item_count)
        if not data:
            return ""
        return base64.b64encode(data).decode("ascii")


class ThumbnailCompositeBuilder:
    """Fetch thumbnails for search results and render them as one composite."""

    def __init__(
        self,
        fetcher: ThumbnailFetcher,
        compositor: GridCompositor,
        max_items: int | None = None,
    ):
        self.fetcher = fetcher
        self.compositor = compositor
        self.max_items = fetcher.config.max_items if max_items is None else max_items

    async def build(self, records: Sequence[ImageRecord]) -> str:
        retained = list(records[: self.max_items])
        if not retained:
            return ""

        thumbnails = await self.fetcher.fetch_thumbnails(retained, cap=len(retained))
        if not thumbnails:
            logger.warning(f"No thumbnails could be fetched for {len(retained)} results")
            return ""

        return await asyncio.to_thread(self.compositor.composite, thumbnails, len(retained))
