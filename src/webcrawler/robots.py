"""Per-host robots.txt compliance gate."""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional
from urllib.robotparser import RobotFileParser

import httpx

from webcrawler.constants import ROBOTS_TIMEOUT_SECONDS
from webcrawler.models import utc_now
from webcrawler.url_utils import host_of, robots_url_for

logger = logging.getLogger(__name__)

# "Mozilla/5.0 (compatible; Name/1.0; ...)" names the crawler in its comment
COMPATIBLE_PRODUCT = re.compile(r"\(\s*compatible;\s*([^/;\s)]+)", re.I)


def robots_product_token(user_agent: str) -> str:
    """Agent name robots.txt groups are matched against.

    Examples:
        Mozilla/5.0 (compatible; WebCrawler/1.0; +https://x) -> WebCrawler
        TestBot/2.0 -> TestBot
    """
    match = COMPATIBLE_PRODUCT.search(user_agent)
    if match:
        return match.group(1)
    tokens = user_agent.split()
    return tokens[0].split("/")[0] if tokens else user_agent


@dataclass
class RobotsRuleSet:
    """Cached robots.txt rules for one host.

    `parser` is None for the permissive entry cached when robots.txt was
    missing, unreachable or unparsable.
    """

    host: str
    parser: Optional[RobotFileParser] = None
    fetched_at: datetime = field(default_factory=utc_now)

    @property
    def permissive(self) -> bool:
        return self.parser is None

    def allows(self, user_agent: str, url: str) -> bool:
        if self.parser is None:
            return True
        return self.parser.can_fetch(user_agent, url)


class RobotsGate:
    """Answers whether a URL may be fetched under its host's robots.txt.

    robots.txt is fetched at most once per host per gate. Failure of any
    kind (HTTP error status, timeout, unparsable body) caches an allow-all
    entry: an unavailable robots.txt never blocks crawling. Concurrent
    first requests for one host wait on a per-host lock and share the
    single fetch.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        user_agent: str,
        timeout: float = ROBOTS_TIMEOUT_SECONDS,
    ):
        """
        Args:
            client: HTTP client used for robots.txt requests
            user_agent: User-Agent or bare agent name; groups are matched
                against its product token
            timeout: Seconds allowed for each robots.txt fetch
        """
        self._client = client
        self.user_agent = user_agent
        self.agent = robots_product_token(user_agent)
        self.timeout = timeout
        self._cache: Dict[str, RobotsRuleSet] = {}
        self._host_locks: Dict[str, asyncio.Lock] = {}
        self.fetch_count = 0

    async def is_allowed(self, url: str) -> bool:
        rules = await self.rules_for(url)
        allowed = rules.allows(self.agent, url)
        if not allowed:
            logger.debug(f"robots.txt disallows {url}")
        return allowed

    async def rules_for(self, url: str) -> RobotsRuleSet:
        """Cached rule set for the URL's host, fetching it on first use."""
        host = host_of(url)
        cached = self._cache.get(host)
        if cached is not None:
            return cached

        lock = self._host_locks.setdefault(host, asyncio.Lock())
        async with lock:
            cached = self._cache.get(host)
            if cached is None:
                cached = await self._load(url, host)
                self._cache[host] = cached
            return cached

    def cached_hosts(self) -> Dict[str, RobotsRuleSet]:
        return dict(self._cache)

    async def _load(self, url: str, host: str) -> RobotsRuleSet:
        robots_url = robots_url_for(url)
        self.fetch_count += 1

        try:
            response = await self._client.get(
                robots_url,
                headers={"Accept": "text/plain,text/html,*/*"},
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Could not load {robots_url}: {e}; allowing all")
            return RobotsRuleSet(host=host)

        if response.status_code != 200:
            logger.info(f"No robots.txt at {robots_url} (status: {response.status_code}); allowing all")
            return RobotsRuleSet(host=host)

        parser = RobotFileParser()
        parser.set_url(robots_url)
        try:
            parser.parse(response.text.splitlines())
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Unparsable robots.txt at {robots_url}: {e}; allowing all")
            return RobotsRuleSet(host=host)

        logger.info(f"Loaded robots.txt from {robots_url}")
        return RobotsRuleSet(host=host, parser=parser)
