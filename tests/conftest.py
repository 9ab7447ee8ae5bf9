"""Shared fixtures for Commons image search tests."""

from io import BytesIO

import pytest
from PIL import Image

from commons_search.models import ImageRecord


def make_raw_page(index, width=800, height=600, thumburl=None, extmetadata=None, **info_extra):
    """Build one raw Commons page the way the API returns it."""
    info = {
        "thumburl": thumburl or f"https://upload.example.org/thumb/a/ab/File{index}.jpg/256px-File{index}.jpg",
        "size": 102400,
        "width": width,
        "height": height,
        "url": f"https://upload.example.org/a/ab/File{index}.jpg",
        "descriptionurl": f"https://commons.example.org/wiki/File:File{index}.jpg",
        "descriptionshorturl": f"https://commons.example.org/w/index.php?curid={index}",
        "mime": "image/jpeg",
    }
    if extmetadata is not None:
        info["extmetadata"] = extmetadata
    info.update(info_extra)
    return {"pageid": 1000 + index, "index": index, "title": f"File:File{index}.jpg", "imageinfo": [info]}


def make_record(index, width=800, height=600):
    return ImageRecord(
        index=index,
        url=f"https://upload.example.org/thumb/a/ab/File{index}.jpg/256px-File{index}.jpg",
        width=width,
        height=height,
        aspect_ratio="4:3",
        description_url=f"https://commons.example.org/w/index.php?curid={index}",
    )


def image_bytes(color=(255, 0, 0), size=(400, 300), fmt="PNG"):
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def raw_page_factory():
    return make_raw_page


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def red_png():
    return image_bytes()
