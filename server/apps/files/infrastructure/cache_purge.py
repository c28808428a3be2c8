"""Cloudflare cache invalidation for purged files."""

import logging
from typing import Final, Protocol, final

import httpx

logger = logging.getLogger(__name__)

_API_BASE_URL: Final = 'https://api.cloudflare.com/client/v4'
_TIMEOUT_SECONDS: Final = 10.0


class CachePurger(Protocol):
    """Anything that can invalidate cached copies of public URLs."""

    def purge(self, urls: list[str]) -> None:
        """Invalidate the given URLs. May raise on failure."""


@final
class NullCachePurger:
    """Used when no CDN is configured."""

    def purge(self, urls: list[str]) -> None:
        """Do nothing."""


@final
class CloudflareCachePurger:
    """Purges URLs from a Cloudflare zone through the v4 API."""

    def __init__(
        self,
        zone_id: str,
        api_token: str,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the purger.

        Args:
            zone_id: Cloudflare zone identifier.
            api_token: API token with cache purge permission.
            http_client: Optional client for dependency injection (testing).
        """
        self._zone_id = zone_id
        self._client = http_client or httpx.Client(timeout=_TIMEOUT_SECONDS)
        self._headers = {'Authorization': f'Bearer {api_token}'}

    def purge(self, urls: list[str]) -> None:
        """Purge URLs from the Cloudflare cache.

        Args:
            urls: Public URLs to invalidate.

        Raises:
            httpx.HTTPError: If the request fails or Cloudflare rejects it.
        """
        if not urls:
            return

        response = self._client.post(
            f'{_API_BASE_URL}/zones/{self._zone_id}/purge_cache',
            json={'files': urls},
            headers=self._headers,
        )
        response.raise_for_status()

        payload = response.json() if response.content else {}
        if not payload.get('success', False):
            raise httpx.HTTPStatusError(
                f'Cloudflare purge rejected: {payload.get("errors")}',
                request=response.request,
                response=response,
            )
        logger.info('Purged %d URLs from Cloudflare cache', len(urls))

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()
