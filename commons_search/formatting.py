"""Format search results into an LLM-friendly text response."""

import yaml

from commons_search.models import SearchResultPage

NO_RESULTS_MESSAGE = (
    "No images found matching your query. Try different search terms or change the "
    "license filter to 'all'."
)


def format_search_results(page: SearchResultPage, thumbnail_size: int = 256) -> str:
    """Render a page as a YAML listing framed with usage hints."""
    if not page.images:
        return NO_RESULTS_MESSAGE

    count = len(page.images)
    lines = [
        f"\nEach result contains: index, url (url to fetch the image, replace {thumbnail_size}px "
        "with desired width up to the original image width), size (bytes), width, height, "
        "aspectRatio, descriptionUrl (webpage link), and optional: caption, date, description, "
        "credit, artist, license (name, usageTerms, url).",
        f"\nShowing {count} result{'s' if count != 1 else ''}:\n",
        yaml.safe_dump(
            [record.to_output() for record in page.images],
            sort_keys=False,
            allow_unicode=True,
            indent=2,
            width=120,
        ),
    ]

    if page.has_more:
        lines.append(
            "\nIf nothing found what you're looking for, try a different query or use "
            f"offset={page.next_offset} to see more results."
        )
    else:
        lines.append("\nEnd of results.")

    lines.append(
        f"\nTo download images: use the image URL and replace '{thumbnail_size}px' with your "
        "desired width (up to original width)."
    )
    lines.append(
        "\nCompare the images in the search results to choose the most suitable for your task. "
        "You may fetch the image(s) using the fetch or download tool (if available), report your "
        "findings or use otherwise as needed."
    )
    return "\n".join(lines)


def build_text_response(
    page: SearchResultPage,
    thumbnail_size: int = 256,
    character_limit: int = 25000,
) -> tuple[str, bool]:
    """
    Format ``page``, halving the listing once if it exceeds ``character_limit``.

    Returns:
        Tuple of (text, truncated)
    """
    text = format_search_results(page, thumbnail_size)
    if len(text) <= character_limit:
        return text, False

    kept = page.images[: len(page.images) // 2]
    shortened = page.model_copy(update={"images": kept})
    warning = (
        f"\n\n⚠️ **Response Truncated**: Original response exceeded {character_limit} "
        f"characters. Showing first {len(kept)} results. Use smaller limit to get "
        "non-truncated results."
    )
    return format_search_results(shortened, thumbnail_size) + warning, True
