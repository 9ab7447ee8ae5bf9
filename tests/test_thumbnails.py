"""Tests for thumbnail fetching and the grid composite."""

import asyncio
import base64
import time
from io import BytesIO

import httpx
import pytest
from PIL import Image, ImageChops, ImageDraw, ImageStat

from commons_search.thumbnails import (
    CompositeLayout,
    FetchedThumbnail,
    GridCompositor,
    ThumbnailCompositeBuilder,
    ThumbnailConfig,
    ThumbnailFetcher,
    flatten_alpha,
    resize_url,
    thumbnail_width,
)
from tests.conftest import image_bytes, make_record

CONFIG = ThumbnailConfig()


def _decode(b64: str) -> Image.Image:
    return Image.open(BytesIO(base64.b64decode(b64))).convert("RGB")


def _is_red(pixel):
    r, g, b = pixel
    return r > 200 and g < 60 and b < 60


def _is_white(pixel):
    return all(c > 240 for c in pixel)


_LABEL_BOX = (48, 40)


def _label_reference(compositor, text):
    """A red cell corner with ``text`` drawn the way the compositor draws labels."""
    ref = Image.new("RGB", _LABEL_BOX, (255, 0, 0))
    offset = compositor.config.label_offset
    ImageDraw.Draw(ref).text(
        (offset, offset),
        text,
        font=compositor._font,
        fill="white",
        stroke_width=2,
        stroke_fill="black",
    )
    return ref


def _distance(a, b):
    return sum(ImageStat.Stat(ImageChops.difference(a, b)).mean)


def _cell_center(layout, position):
    left, top = layout.cell_origin(position)
    return left + layout.cell // 2, top + layout.cell // 2


class TestHelpers:
    def test_landscape_width_is_thumbnail_size(self):
        assert thumbnail_width(800, 600, 256) == 256

    def test_square_width_is_thumbnail_size(self):
        assert thumbnail_width(500, 500, 256) == 256

    def test_portrait_width_scaled(self):
        assert thumbnail_width(600, 800, 256) == 192

    def test_very_narrow_portrait_keeps_one_pixel(self):
        assert thumbnail_width(1, 10000, 256) == 1

    def test_resize_url(self):
        url = "https://upload.example.org/thumb/a/ab/Cat.jpg/256px-Cat.jpg"
        assert resize_url(url, 192) == "https://upload.example.org/thumb/a/ab/Cat.jpg/192px-Cat.jpg"

    def test_resize_url_without_segment_unchanged(self):
        url = "https://upload.example.org/a/ab/Cat.jpg"
        assert resize_url(url, 192) == url

    def test_resize_url_only_touches_last_segment(self):
        url = "https://upload.example.org/thumb/a/ab/100px-Logo.png/256px-100px-Logo.png"
        assert resize_url(url, 192) == (
            "https://upload.example.org/thumb/a/ab/100px-Logo.png/192px-100px-Logo.png"
        )

    @pytest.mark.parametrize(
        "make_image",
        [
            lambda: Image.new("LA", (8, 8), (0, 0)),
            lambda: Image.new("LA", (8, 8), (0, 0)).convert("La"),
            lambda: Image.new("RGBA", (8, 8), (0, 0, 0, 0)).convert("RGBa"),
        ],
        ids=["LA", "La", "RGBa"],
    )
    def test_flatten_alpha_modes(self, make_image):
        img = make_image()
        flat = flatten_alpha(img, (255, 255, 255))
        assert flat.mode == "RGB"
        assert flat.getpixel((4, 4)) == (255, 255, 255)

    def test_flatten_alpha_opaque_image_unchanged(self):
        flat = flatten_alpha(Image.new("L", (8, 8), 0), (255, 255, 255))
        assert flat.mode == "RGB"
        assert flat.getpixel((4, 4)) == (0, 0, 0)


class TestLayout:
    def test_canvas_size_one_item(self):
        layout = CompositeLayout.for_items(1, CONFIG)
        assert layout.rows == 1
        assert layout.canvas_size == (3 * 256 + 4 * 10, 256 + 2 * 10)

    def test_canvas_size_partial_last_row(self):
        layout = CompositeLayout.for_items(7, CONFIG)
        assert layout.rows == 3
        assert layout.canvas_size == (808, 3 * 256 + 4 * 10)

    def test_cell_origin(self):
        layout = CompositeLayout.for_items(9, CONFIG)
        assert layout.cell_origin(0) == (10, 10)
        assert layout.cell_origin(2) == (2 * 256 + 3 * 10, 10)
        assert layout.cell_origin(4) == (256 + 2 * 10, 256 + 2 * 10)

    def test_custom_geometry(self):
        config = ThumbnailConfig(thumbnail_size=100, columns=2, spacing=4)
        layout = CompositeLayout.for_items(3, config)
        assert layout.canvas_size == (2 * 100 + 3 * 4, 2 * 100 + 3 * 4)
        assert layout.cell_origin(2) == (4, 100 + 2 * 4)


class TestFetcher:
    @pytest.mark.asyncio
    async def test_requests_resized_urls_and_tags_positions(self):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, content=image_bytes())

        fetcher = ThumbnailFetcher(CONFIG, transport=httpx.MockTransport(handler))
        records = [make_record(0, 800, 600), make_record(1, 600, 800)]
        thumbs = await fetcher.fetch_thumbnails(records)

        assert sorted(t.position for t in thumbs) == [0, 1]
        assert all(t.image.size == (256, 256) for t in thumbs)
        assert any(u.endswith("/256px-File0.jpg") for u in requested)
        assert any(u.endswith("/192px-File1.jpg") for u in requested)

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_requests(self):
        def handler(request):
            raise AssertionError("no request expected")

        fetcher = ThumbnailFetcher(CONFIG, transport=httpx.MockTransport(handler))
        assert await fetcher.fetch_thumbnails([]) == []

    @pytest.mark.asyncio
    async def test_cap_limits_network_activity(self):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, content=image_bytes(size=(32, 32)))

        fetcher = ThumbnailFetcher(CONFIG, transport=httpx.MockTransport(handler))
        records = [make_record(i) for i in range(20)]
        thumbs = await fetcher.fetch_thumbnails(records)

        assert len(requested) == 15
        assert len(thumbs) == 15
        assert not any("File15.jpg" in u for u in requested)

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self):
        def handler(request):
            if "File1.jpg" in str(request.url):
                return httpx.Response(404)
            if "File2.jpg" in str(request.url):
                return httpx.Response(200, content=b"not an image")
            if "File3.jpg" in str(request.url):
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, content=image_bytes())

        fetcher = ThumbnailFetcher(CONFIG, transport=httpx.MockTransport(handler))
        outcomes = await fetcher.fetch_all([make_record(i) for i in range(5)])

        assert [o.ok for o in outcomes] == [True, False, False, False, True]
        assert outcomes[1].error == "HTTP 404"
        assert outcomes[2].error.startswith("decode failed")
        assert "ReadTimeout" in outcomes[3].error

    @pytest.mark.asyncio
    async def test_slow_body_hits_per_item_deadline(self):
        async def trickle():
            for _ in range(12):
                await asyncio.sleep(0.15)
                yield b"x"

        def handler(request):
            if "File0.jpg" in str(request.url):
                return httpx.Response(200, content=trickle())
            return httpx.Response(200, content=image_bytes())

        config = ThumbnailConfig(timeout=0.5)
        fetcher = ThumbnailFetcher(config, transport=httpx.MockTransport(handler))

        started = time.monotonic()
        outcomes = await fetcher.fetch_all([make_record(0), make_record(1)])
        elapsed = time.monotonic() - started

        assert [o.ok for o in outcomes] == [False, True]
        assert outcomes[0].error == "timed out"
        assert elapsed < 1.5

    @pytest.mark.asyncio
    async def test_transparent_image_flattened_on_white(self):
        buf = BytesIO()
        Image.new("RGBA", (64, 64), (0, 0, 0, 0)).save(buf, format="PNG")

        fetcher = ThumbnailFetcher(
            CONFIG, transport=httpx.MockTransport(lambda r: httpx.Response(200, content=buf.getvalue()))
        )
        (thumb,) = await fetcher.fetch_thumbnails([make_record(0)])
        assert thumb.image.mode == "RGB"
        assert _is_white(thumb.image.getpixel((128, 128)))


class TestCompositor:
    def test_empty_returns_empty(self):
        compositor = GridCompositor(CONFIG)
        assert compositor.composite([], 0) == ""
        assert compositor.render([], 3) == b""

    def test_single_item_canvas(self):
        thumb = FetchedThumbnail(image=Image.new("RGB", (256, 256), (255, 0, 0)), position=0)
        result = GridCompositor(CONFIG).composite([thumb], 1)
        img = _decode(result)
        assert img.size == CompositeLayout.for_items(1, CONFIG).canvas_size
        assert img.size == (808, 276)

    def test_gap_left_blank(self):
        red = Image.new("RGB", (256, 256), (255, 0, 0))
        thumbs = [FetchedThumbnail(image=red, position=0), FetchedThumbnail(image=red, position=2)]
        img = _decode(GridCompositor(CONFIG).composite(thumbs, 3))
        layout = CompositeLayout.for_items(3, CONFIG)

        assert _is_red(img.getpixel(_cell_center(layout, 0)))
        assert _is_white(img.getpixel(_cell_center(layout, 1)))
        assert _is_red(img.getpixel(_cell_center(layout, 2)))

    def test_label_drawn_near_cell_corner(self):
        red = Image.new("RGB", (256, 256), (255, 0, 0))
        img = _decode(GridCompositor(CONFIG).composite([FetchedThumbnail(image=red, position=0)], 1))
        left, top = CompositeLayout.for_items(1, CONFIG).cell_origin(0)
        label_area = img.crop((left + 5, top + 5, left + 45, top + 35))
        assert any(not _is_red(p) for p in label_area.getdata())
        # far corner of the cell is untouched by the label
        assert _is_red(img.getpixel((left + 240, top + 240)))

    def test_labels_are_one_based(self):
        compositor = GridCompositor(CONFIG)
        red = Image.new("RGB", (256, 256), (255, 0, 0))
        thumbs = [FetchedThumbnail(image=red, position=0), FetchedThumbnail(image=red, position=4)]
        img = _decode(compositor.composite(thumbs, 5))
        layout = CompositeLayout.for_items(5, CONFIG)

        for position, expected, wrong in [(0, "1", "0"), (4, "5", "4")]:
            left, top = layout.cell_origin(position)
            crop = img.crop((left, top, left + _LABEL_BOX[0], top + _LABEL_BOX[1]))
            assert _distance(crop, _label_reference(compositor, expected)) < _distance(
                crop, _label_reference(compositor, wrong)
            )


class TestCompositeBuilder:
    @pytest.mark.asyncio
    async def test_empty_records(self):
        builder = ThumbnailCompositeBuilder(ThumbnailFetcher(CONFIG), GridCompositor(CONFIG))
        assert await builder.build([]) == ""

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_grid_positions(self):
        def handler(request):
            if "File1.jpg" in str(request.url):
                return httpx.Response(500)
            return httpx.Response(200, content=image_bytes())

        fetcher = ThumbnailFetcher(CONFIG, transport=httpx.MockTransport(handler))
        builder = ThumbnailCompositeBuilder(fetcher, GridCompositor(CONFIG))
        img = _decode(await builder.build([make_record(i) for i in range(4)]))

        layout = CompositeLayout.for_items(4, CONFIG)
        assert img.size == layout.canvas_size
        assert _is_red(img.getpixel(_cell_center(layout, 0)))
        assert _is_white(img.getpixel(_cell_center(layout, 1)))
        assert _is_red(img.getpixel(_cell_center(layout, 2)))
        assert _is_red(img.getpixel(_cell_center(layout, 3)))

    @pytest.mark.asyncio
    async def test_all_failed_returns_empty(self):
        fetcher = ThumbnailFetcher(CONFIG, transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        builder = ThumbnailCompositeBuilder(fetcher, GridCompositor(CONFIG))
        assert await builder.build([make_record(0), make_record(1)]) == ""

    @pytest.mark.asyncio
    async def test_caps_items_in_grid(self):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, content=image_bytes(size=(16, 16)))

        fetcher = ThumbnailFetcher(CONFIG, transport=httpx.MockTransport(handler))
        builder = ThumbnailCompositeBuilder(fetcher, GridCompositor(CONFIG))
        img = _decode(await builder.build([make_record(i) for i in range(20)]))

        assert len(requested) == 15
        assert img.size == CompositeLayout.for_items(15, CONFIG).canvas_size
