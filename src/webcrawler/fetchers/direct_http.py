"""Direct HTTP fetch strategy built on httpx."""

import logging
from typing import Optional

import httpx

from webcrawler.config import CrawlConfig
from webcrawler.exceptions import FetchError, FetchErrorKind
from webcrawler.fetchers.base import FetchStrategy
from webcrawler.http_client import build_client
from webcrawler.models import AuthContext, Document

logger = logging.getLogger(__name__)


class DirectHttpStrategy(FetchStrategy):
    """Plain GET requests. Only 2xx responses count as success."""

    name = "http"

    def __init__(
        self,
        config: CrawlConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            config: Session configuration
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        super().__init__(config)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def open(self) -> None:
        if self._client is None:
            self._client = build_client(
                self.config.user_agent,
                timeout=self.config.timeout_seconds,
                follow_redirects=self.config.follow_redirects,
                max_redirects=self.config.max_redirects,
                proxy=self.config.proxy,
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, auth: AuthContext) -> Document:
        if self._client is None:
            await self.open()

        try:
            response = await self._client.get(url, headers=self.compose_headers(auth))
        except httpx.TimeoutException as e:
            raise FetchError(
                FetchErrorKind.TIMEOUT,
                f"Request timeout after {self.config.timeout_seconds}s: {url}",
                url=url,
            ) from e
        except httpx.ConnectError as e:
            raise FetchError(
                FetchErrorKind.CONNECTION_REFUSED,
                f"Connection error for {url}: {e}",
                url=url,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(FetchErrorKind.OTHER, f"Request failed for {url}: {e}", url=url) from e

        if not response.is_success:
            raise FetchError.http_error(url, response.status_code)

        return Document(
            url=str(response.url),
            body=response.text,
            status_code=response.status_code,
            headers=dict(response.headers),
        )
