"""Business logic services for Commons image search."""

import logging

from commons_search.commons_client import CommonsClient
from commons_search.exceptions import SourceApiError
from commons_search.models import SearchParams, SearchResultPage
from commons_search.normalize import ResponseNormalizer

logger = logging.getLogger(__name__)


class ImageSearchService:
    """Service for searching Commons and normalizing the results."""

    def __init__(self, client: CommonsClient, normalizer: ResponseNormalizer | None = None):
        self.client = client
        self.normalizer = normalizer or ResponseNormalizer()

    async def search(self, params: SearchParams) -> SearchResultPage:
        """
        Search Commons and return one normalized page.

        Raises:
            SourceApiError: If the search call fails or the API reports an error
        """
        try:
            raw = await self.client.search(params)
            page = self.normalizer.normalize(raw, params.offset, params.limit)
        except SourceApiError as e:
            raise SourceApiError(
                f"Failed to search Wikimedia Commons: {e.message}",
                status_code=e.status_code,
                response_text=e.response_text,
            ) from e

        logger.info(
            f"Search successful: {len(page.images)} images for query '{params.query}' "
            f"(offset={params.offset}, has_more={page.has_more})"
        )
        return page
