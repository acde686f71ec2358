"""Fetch strategies: direct HTTP, headless browser, external process."""

from typing import Optional

import httpx

from webcrawler.config import CrawlConfig, FetchMethod
from webcrawler.fetchers.base import FetchStrategy
from webcrawler.fetchers.browser import HeadlessBrowserStrategy
from webcrawler.fetchers.direct_http import DirectHttpStrategy
from webcrawler.fetchers.process import ExternalProcessStrategy


def create_strategy(
    config: CrawlConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FetchStrategy:
    """Build the fetch strategy named by config.fetch_strategy.

    Args:
        config: Session configuration
        transport: httpx transport for the direct HTTP strategy

    Returns:
        An unopened FetchStrategy
    """
    if config.fetch_strategy == FetchMethod.HEADLESS_BROWSER:
        return HeadlessBrowserStrategy(config)
    if config.fetch_strategy == FetchMethod.EXTERNAL_PROCESS:
        return ExternalProcessStrategy(config)
    return DirectHttpStrategy(config, transport=transport)


__all__ = [
    "FetchStrategy",
    "DirectHttpStrategy",
    "HeadlessBrowserStrategy",
    "ExternalProcessStrategy",
    "create_strategy",
]
