"""Normalize Wikimedia Commons search responses to a stable record shape."""

import re
from typing import Any

from commons_search.aspect_ratio import approximate_ratio
from commons_search.exceptions import SourceApiError
from commons_search.models import ImageRecord, LicenseInfo, SearchResultPage
from commons_search.utils import safe_get

_MARKUP_RE = re.compile(r"<[^>]*>")

TRUNCATION_MARKER = "..."


def strip_markup(value: str | None) -> str | None:
    """Remove HTML tags from a string."""
    if not value:
        return None
    return _MARKUP_RE.sub("", value)


def truncate_text(value: str | None, max_length: int = 500) -> str | None:
    """Cap ``value`` at ``max_length`` characters, appending a marker when cut."""
    if not value:
        return None
    if len(value) <= max_length:
        return value
    return value[:max_length] + TRUNCATION_MARKER


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0:
        return None
    return int(value)


def _ordinal(page: dict[str, Any]) -> int:
    value = page.get("index")
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


class ResponseNormalizer:
    """Turns a raw search document into a page of ``ImageRecord``s."""

    def __init__(self, text_limit: int = 500, license_name_limit: int = 100):
        self.text_limit = text_limit
        self.license_name_limit = license_name_limit

    @staticmethod
    def _meta(extmetadata: dict[str, Any], key: str) -> str | None:
        """Read ``extmetadata[key]["value"]`` as a string, None when blank."""
        value = safe_get(extmetadata, key, "value")
        if value is None or value == "":
            return None
        return str(value)

    def _text(self, extmetadata: dict[str, Any], key: str, strip: bool = True) -> str | None:
        value = self._meta(extmetadata, key)
        if strip:
            value = strip_markup(value)
        return truncate_text(value, self.text_limit)

    def _license(self, extmetadata: dict[str, Any]) -> LicenseInfo | None:
        name = self._meta(extmetadata, "LicenseShortName") or self._meta(extmetadata, "License")
        license_info = LicenseInfo(
            name=truncate_text(name, self.license_name_limit),
            usage_terms=self._text(extmetadata, "UsageTerms"),
            url=self._meta(extmetadata, "LicenseUrl"),
        )
        return None if license_info.is_empty() else license_info

    def normalize_page(self, page: dict[str, Any]) -> ImageRecord | None:
        """Build a record from one raw page, or None when required fields are missing."""
        image_info = page.get("imageinfo")
        if not isinstance(image_info, list) or not image_info:
            return None
        info = image_info[0]
        if not isinstance(info, dict):
            return None

        thumb_url = info.get("thumburl")
        width = _positive_int(info.get("width"))
        height = _positive_int(info.get("height"))
        if not isinstance(thumb_url, str) or not thumb_url or width is None or height is None:
            return None

        extmetadata = info.get("extmetadata")
        if not isinstance(extmetadata, dict):
            extmetadata = {}

        size = info.get("size")
        return ImageRecord(
            index=_ordinal(page),
            url=thumb_url,
            size=size if isinstance(size, int) and not isinstance(size, bool) else None,
            width=width,
            height=height,
            aspect_ratio=approximate_ratio(width, height),
            caption=self._text(extmetadata, "ObjectName", strip=False),
            date=self._text(extmetadata, "DateTimeOriginal"),
            description_url=info.get("descriptionshorturl") or "",
            description=self._text(extmetadata, "ImageDescription"),
            credit=self._text(extmetadata, "Credit"),
            artist=self._text(extmetadata, "Artist"),
            license=self._license(extmetadata),
        )

    def normalize(self, raw: dict[str, Any], offset: int, limit: int) -> SearchResultPage:
        """
        Normalize a raw search document into the ``[offset, offset+limit)`` window.

        The document is expected to hold up to ``offset + limit + lookahead``
        pages so that ``has_more`` can see one item past the window.

        Raises:
            SourceApiError: If the document carries an explicit error block
        """
        error = raw.get("error")
        if error:
            info = safe_get(error, "info") or safe_get(error, "code") or str(error)
            raise SourceApiError(f"Wikimedia API error: {info}")

        pages = safe_get(raw, "query", "pages")
        if not isinstance(pages, list) or not pages:
            return SearchResultPage(images=[], has_more=False)

        ordered = sorted(
            (p for p in pages if isinstance(p, dict)),
            key=_ordinal,
        )

        start = min(offset, len(ordered))
        end = min(offset + limit, len(ordered))
        has_more = len(ordered) > offset + limit

        images = []
        for page in ordered[start:end]:
            record = self.normalize_page(page)
            if record is not None:
                images.append(record)

        return SearchResultPage(
            images=images,
            has_more=has_more,
            next_offset=offset + limit if has_more else None,
        )
