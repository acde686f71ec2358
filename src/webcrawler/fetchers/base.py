"""Common contract for fetch strategies."""

from abc import ABC, abstractmethod
from typing import Dict

from webcrawler.config import CrawlConfig
from webcrawler.constants import ACCEPT_HEADERS
from webcrawler.models import AuthContext, Document


class FetchStrategy(ABC):
    """Retrieves a document for a URL.

    Strategies are async context managers owning their transport
    resources:

        async with strategy:
            document = await strategy.fetch(url, auth_context)

    fetch() either returns a Document with a successful status or raises
    FetchError. The engine depends on nothing else, so strategies are
    interchangeable.
    """

    name = "base"

    def __init__(self, config: CrawlConfig):
        self.config = config

    async def __aenter__(self) -> "FetchStrategy":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self) -> None:
        """Acquire long-lived resources (clients, browsers)."""

    async def close(self) -> None:
        """Release everything acquired by open()."""

    @abstractmethod
    async def fetch(self, url: str, auth: AuthContext) -> Document:
        """Fetch one document.

        Raises:
            FetchError: On timeout, refused connection, HTTP error status
                or any other failure
        """

    def compose_headers(self, auth: AuthContext) -> Dict[str, str]:
        """User agent, accept headers and auth headers for one request."""
        return {
            "User-Agent": self.config.user_agent,
            **ACCEPT_HEADERS,
            **auth.request_headers(),
        }
