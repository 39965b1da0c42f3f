"""HTTP transport for the public collection API.

Performs a single GET and turns the outcome into either parsed JSON or one
of the domain's upstream errors. Retrying and pacing live one layer up.
"""

import logging
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from metwall.domain.errors import (
    UpstreamConnectionError,
    UpstreamPayloadError,
    UpstreamStatusError,
    UpstreamTimeoutError,
)
from metwall.domain.models.common import ObjectID

logger = logging.getLogger(__name__)

COLLECTION_API_BASE = "https://collectionapi.metmuseum.org/public/collection/v1"
DEFAULT_TIMEOUT_SECONDS = 12.0

# Look like a normal browser request, not a script
REQUEST_HEADERS = {"Accept": "application/json,text/plain,*/*"}


def search_url(query: str, has_images: bool = True, base_url: str = COLLECTION_API_BASE) -> str:
    params = urlencode({"q": query, "hasImages": "true" if has_images else "false"})
    return f"{base_url}/search?{params}"


def object_url(object_id: ObjectID, base_url: str = COLLECTION_API_BASE) -> str:
    return f"{base_url}/objects/{object_id}"


class CollectionTransport:
    """Thin async wrapper around httpx for JSON GETs."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initializes the transport.

        Args:
            client: Client to send requests with. One is created (and owned)
                if not given.
            timeout_s: Per-request timeout; expiry raises UpstreamTimeoutError.
        """
        self.timeout_s = timeout_s
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(headers=REQUEST_HEADERS)

    async def fetch_json(self, url: str) -> Any:
        """GETs `url` and returns the decoded JSON body.

        Raises:
            UpstreamStatusError: Non-2xx response (transient or permanent subclass).
            UpstreamTimeoutError: No response within the timeout.
            UpstreamConnectionError: The request failed before a response arrived.
            UpstreamPayloadError: A 2xx response whose body is not JSON.
        """
        try:
            response = await self._client.get(url, headers=REQUEST_HEADERS, timeout=self.timeout_s)
        except httpx.TimeoutException as e:
            logger.debug(f"Timeout fetching {url}: {e}")
            raise UpstreamTimeoutError(url=url, timeout_s=self.timeout_s) from e
        except httpx.HTTPError as e:
            logger.debug(f"Transport error fetching {url}: {e}")
            raise UpstreamConnectionError(f"Request failed: {e}", url=url) from e

        if not response.is_success:
            # Blocked or throttled pages usually come back as non-JSON
            raise UpstreamStatusError.for_status(response.status_code, url=url)

        try:
            return response.json()
        except ValueError as e:
            logger.debug(f"Non-JSON body from {url}: {e}")
            raise UpstreamPayloadError(f"Response is not JSON: {e}", url=url) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
