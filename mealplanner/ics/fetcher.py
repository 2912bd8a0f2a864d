"""HTTP client for downloading ICS calendar feeds."""

import asyncio
import logging
from typing import Any, Optional

import httpx

from .exceptions import ICSFetchError, ICSNetworkError, ICSTimeoutError
from .models import ICSResponse

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Meal Planner Calendar Integration"
DEFAULT_TIMEOUT = 10.0


class ICSFetcher:
    """Async HTTP client for downloading ICS calendar files."""

    def __init__(
        self,
        settings: Any = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize ICS fetcher.

        Args:
            settings: Application settings (``request_timeout``, ``user_agent``)
            client: Externally owned client to use instead of creating one
            transport: Transport for the client this fetcher creates
        """
        self.settings = settings
        self.timeout = float(getattr(settings, "request_timeout", DEFAULT_TIMEOUT))
        self.user_agent = getattr(settings, "user_agent", DEFAULT_USER_AGENT)
        self.client: Optional[httpx.AsyncClient] = client
        self._owns_client = client is None
        self._transport = transport

        logger.debug("ICS fetcher initialized (timeout %.1fs)", self.timeout)

    async def __aenter__(self) -> "ICSFetcher":
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client exists."""
        if self.client is None or self.client.is_closed:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "text/calendar, text/plain, */*",
                },
            )
            self._owns_client = True
        return self.client

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client and self.client is not None and not self.client.is_closed:
            await self.client.aclose()

    async def fetch_ics(self, url: str, headers: Optional[dict[str, str]] = None) -> ICSResponse:
        """Download ICS content from a feed URL.

        The whole request, redirects included, is bounded by the configured
        timeout.

        Args:
            url: Feed URL
            headers: Extra request headers (override the client defaults)

        Returns:
            The response body and metadata

        Raises:
            ICSTimeoutError: The request did not complete within the timeout
            ICSNetworkError: DNS, connection or protocol failure
            ICSFetchError: Non-2xx status, invalid URL or empty body
        """
        client = await self._ensure_client()
        logger.debug("Fetching ICS from %s", url)

        try:
            response = await asyncio.wait_for(
                client.get(url, headers=headers), timeout=self.timeout
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise ICSTimeoutError(f"Request timeout after {self.timeout:g}s") from e
        except httpx.InvalidURL as e:
            raise ICSFetchError(f"Invalid URL {url!r}: {e}") from e
        except httpx.RequestError as e:
            raise ICSNetworkError(f"Network error: {e}") from e

        if not response.is_success:
            raise ICSFetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}", response.status_code
            )

        content = response.text
        if not content or not content.strip():
            raise ICSFetchError("Empty ICS data received", response.status_code)

        content_type = response.headers.get("content-type", "").lower()
        if content_type and not any(ct in content_type for ct in ("text/calendar", "text/plain")):
            logger.debug("Unexpected content type %s from %s", content_type, url)

        logger.debug("Downloaded %d characters from %s", len(content), url)
        return ICSResponse(
            content=content,
            status_code=response.status_code,
            url=str(response.url),
            headers=dict(response.headers),
        )
