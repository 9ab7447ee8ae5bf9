"""Pydantic models for data structures."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

LicenseType = Literal["all", "no_restrictions"]


class SearchParams(BaseModel):
    """Parameters for a Commons image search."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description=(
            "Search query. Note: Wikimedia uses strict keyword matching, not semantic search. "
            "Use common, fewer terms for more results."
        ),
    )
    limit: int = Field(
        default=9,
        ge=1,
        le=50,
        description=(
            "Maximum number of results to return (1-50). 12 or fewer is recommended, "
            "especially if including thumbnails is enabled."
        ),
    )
    offset: int = Field(default=0, ge=0, description="Number of results to skip for pagination")
    license: LicenseType = Field(
        default="all",
        description=(
            "Filter images by license type: 'no_restrictions' for CC0/public domain only, "
            "'all' for any license"
        ),
    )
    include_thumbnails: bool = Field(
        default=True,
        description=(
            "If true, returns an additional composite image so you can visually view and "
            "compare the results."
        ),
    )


class LicenseInfo(BaseModel):
    """Licensing fields attached to an image when the source supplies any."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    usage_terms: str | None = Field(default=None, alias="usageTerms")
    url: str | None = None

    def is_empty(self) -> bool:
        return not (self.name or self.usage_terms or self.url)


class ImageRecord(BaseModel):
    """Normalized Commons image record."""

    model_config = ConfigDict(populate_by_name=True)

    index: int = Field(..., ge=0, description="Position in the full, unpaginated result set")
    url: str = Field(..., description="Thumbnail URL")
    size: int | None = Field(default=None, description="File size in bytes")
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    aspect_ratio: str = Field(..., alias="aspectRatio")
    caption: str | None = None
    date: str | None = None
    description_url: str = Field(default="", alias="descriptionUrl")
    description: str | None = None
    credit: str | None = None
    artist: str | None = None
    license: LicenseInfo | None = None

    def to_output(self) -> dict[str, Any]:
        """Serialize with camelCase keys, leaving out absent optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SearchResultPage(BaseModel):
    """One page of normalized search results."""

    model_config = ConfigDict(populate_by_name=True)

    images: list[ImageRecord] = Field(default_factory=list)
    has_more: bool = Field(default=False, alias="hasMore")
    next_offset: int | None = Field(default=None, alias="nextOffset")

    def to_output(self) -> dict[str, Any]:
        """Serialize for callers; ``nextOffset`` only appears when ``hasMore``."""
        return self.model_dump(by_alias=True, exclude_none=True)
