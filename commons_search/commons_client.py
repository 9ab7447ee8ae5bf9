"""Wikimedia Commons search API client."""

import logging
from typing import Any

import httpx

from commons_search.exceptions import NetworkError, SourceApiError
from commons_search.models import SearchParams

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://commons.wikimedia.org/w/api.php"

# Wikidata item for CC0, matched against the P275 (copyright license) statement
CC0_WIKIDATA_ID = "Q6938433"

# File: namespace on Commons
FILE_NAMESPACE = 6


def build_search_params(
    params: SearchParams,
    thumbnail_size: int = 256,
    max_results_limit: int = 50,
    lookahead_count: int = 1,
) -> dict[str, str]:
    """
    Build the query string for a generator=search imageinfo request.

    The request asks for ``offset + limit + lookahead_count`` results (capped
    at ``max_results_limit``) so the normalizer can tell whether more pages
    exist without a second round trip.
    """
    total_to_fetch = min(params.offset + params.limit + lookahead_count, max_results_limit)

    search_query = f"{params.query} filemime:image/*"
    if params.license == "no_restrictions":
        search_query += f" haswbstatement:P275={CC0_WIKIDATA_ID}"

    return {
        "action": "query",
        "format": "json",
        "formatversion": "2",
        "generator": "search",
        "gsrsearch": search_query,
        "gsrnamespace": str(FILE_NAMESPACE),
        "gsrlimit": str(total_to_fetch),
        "prop": "imageinfo",
        "iiprop": "url|size|mime|extmetadata",
        "iiurlwidth": str(thumbnail_size),
    }


class CommonsClient:
    """Async client for the Wikimedia Commons action API."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        user_agent: str = "commons-image-search/1.0.0",
        timeout: float = 15.0,
        thumbnail_size: int = 256,
        max_results_limit: int = 50,
        lookahead_count: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.thumbnail_size = thumbnail_size
        self.max_results_limit = max_results_limit
        self.lookahead_count = lookahead_count
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    async def search(self, params: SearchParams) -> dict[str, Any]:
        """
        Run a search and return the raw response document.

        Raises:
            SourceApiError: On a non-success status or an undecodable body
            NetworkError: On network errors
        """
        query_params = build_search_params(
            params,
            thumbnail_size=self.thumbnail_size,
            max_results_limit=self.max_results_limit,
            lookahead_count=self.lookahead_count,
        )
        logger.info(
            f"Commons search: query={params.query!r} gsrlimit={query_params['gsrlimit']} "
            f"license={params.license}"
        )

        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers(),
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            try:
                response = await client.get(self.base_url, params=query_params)
                logger.debug(f"Commons API response: {response.status_code}")
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                error_text = e.response.text[:1000] if e.response.text else ""
                logger.error(f"Commons API error {status}: Response={error_text}")
                raise SourceApiError(
                    f"Wikimedia API request failed: {status} {e.response.reason_phrase}",
                    status_code=status,
                    response_text=error_text,
                ) from e
            except httpx.RequestError as e:
                logger.error(f"Network error connecting to Commons API: {e}")
                raise NetworkError(f"Network error connecting to Wikimedia Commons: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise SourceApiError(
                "Wikimedia API returned a response that is not JSON",
                status_code=response.status_code,
                response_text=response.text[:1000],
            ) from e
        if not isinstance(data, dict):
            raise SourceApiError("Wikimedia API returned an unexpected document")
        return data
